"""
Audio Logging System for Historical Friction.

Provides detailed logging of sonification events to help understand and
debug panning, voice lifecycle, generation changes and narration.

Usage:
    from audio.audio_logger import audio_log, set_audio_logging

    # Enable/disable logging
    set_audio_logging(True)

    # Log events
    audio_log.spatial("Big Ben", pan=0.5, bearing=120.0, heading=90.0)
    audio_log.voice("start", "cluster", "Big Ben")
    audio_log.epoch(3, 4, reason="update")

Toggle logging with the 'L' key in the host application.
"""

import time
from dataclasses import dataclass
from enum import Enum

from state.constants import SPATIAL_LOG_THROTTLE_MS
from utils.helpers import relative_angle


class LogCategory(Enum):
    """Categories for audio logging."""
    SPATIAL = "SPATIAL"        # Pan from bearing and heading
    VOICE = "VOICE"            # Voice start/stop/dispose
    EPOCH = "EPOCH"            # Generation changes and stale continuations
    MODE = "MODE"              # Strategy dispatch and engine state
    NARRATION = "NARRATION"    # Spoken fragments
    MELODY = "MELODY"          # Melody notes
    SCHEDULER = "SCHEDULER"    # Timer activity
    GENERAL = "GENERAL"        # General audio events


@dataclass
class AudioLogConfig:
    """Configuration for audio logging."""
    enabled: bool = False
    log_to_console: bool = True
    log_to_file: bool = False
    log_file_path: str = "audio_debug.log"

    # Category filters (True = log this category)
    categories: dict = None

    # Throttling (avoid spam from per-tick heading updates)
    throttle_ms: int = SPATIAL_LOG_THROTTLE_MS

    # Detail level (0=minimal, 1=normal, 2=verbose)
    detail_level: int = 1

    def __post_init__(self):
        if self.categories is None:
            self.categories = {cat: True for cat in LogCategory}


class AudioEventLogger:
    """Centralized categorized audio logging."""

    def __init__(self):
        self.config = AudioLogConfig()
        self._last_log_times = {}  # source_id -> last log time
        self._log_file = None
        self._start_time = time.time()

    def enable(self, enabled: bool = True):
        """Enable or disable audio logging."""
        self.config.enabled = enabled
        if self.config.log_to_file:
            if enabled and self._log_file is None:
                self._log_file = open(self.config.log_file_path, 'a', encoding='utf-8')
            elif not enabled and self._log_file is not None:
                self._log_file.close()
                self._log_file = None
        if enabled:
            print("\n" + "=" * 60)
            print("AUDIO LOGGING ENABLED")
            print("=" * 60)
            self._print_legend()
        else:
            print("\nAudio logging disabled")

    def _print_legend(self):
        """Print a legend explaining the log output."""
        print("""
LEGEND:
  [SPATIAL]    - Stereo placement (pan from bearing relative to heading)
  [VOICE]      - Voice lifecycle (start, release, dispose, finish)
  [EPOCH]      - Generation changes and skipped stale callbacks
  [MODE]       - Mode dispatch and engine state changes
  [NARRATION]  - Spoken fragments (pitch, rate, volume)
  [MELODY]     - Melody notes (pitch, waveform, duration)
  [SCHEDULER]  - Timer activity

VALUES:
  pan:      -1.0 (full left) to +1.0 (full right)
  vol:      0.0 (silent) to 1.0 (full volume)
  angle:    -180 to +180 (0=ahead, 180=behind)

Press 'L' to toggle logging on/off
""" + "=" * 60 + "\n")

    def _should_log(self, category: LogCategory, source_id: str = None) -> bool:
        """Check if we should log this event."""
        if not self.config.enabled:
            return False
        if not self.config.categories.get(category, True):
            return False

        # Throttle repeated logs from same source
        if source_id and self.config.throttle_ms > 0:
            now = time.time() * 1000
            last_time = self._last_log_times.get(source_id, 0)
            if now - last_time < self.config.throttle_ms:
                return False
            self._last_log_times[source_id] = now

        return True

    def _format_time(self) -> str:
        """Format elapsed time."""
        elapsed = time.time() - self._start_time
        return f"{elapsed:8.2f}s"

    def _log(self, category: LogCategory, message: str, source_id: str = None):
        """Internal logging method."""
        if not self._should_log(category, source_id):
            return

        full_message = f"{self._format_time()} [{category.value:10}] {message}"

        if self.config.log_to_console:
            print(full_message)

        if self._log_file:
            self._log_file.write(full_message + "\n")
            self._log_file.flush()

    # === Convenience Methods ===

    def spatial(self, source: str, pan: float, bearing: float, heading: float):
        """Log the stereo placement of a voice."""
        msg = f"{source[:15]:15} | pan:{pan:+5.2f} {self._pan_indicator(pan)}"
        if self.config.detail_level >= 1:
            angle = relative_angle(bearing, heading)
            msg += f" | angle:{angle:+6.1f} ({self._angle_to_direction(angle)})"
        if self.config.detail_level >= 2:
            msg += f" | bearing:{bearing:5.1f} | heading:{heading:5.1f}"
        self._log(LogCategory.SPATIAL, msg, f"spatial_{source}")

    def voice(self, action: str, kind: str, source: str = ""):
        """Log a voice lifecycle event."""
        if self.config.detail_level >= 1:
            msg = f"{action:8} | {kind:8} | {source}"
            self._log(LogCategory.VOICE, msg)

    def epoch(self, old_epoch: int, new_epoch: int, reason: str = ""):
        """Log a generation change."""
        msg = f"epoch {old_epoch} -> {new_epoch}"
        if reason:
            msg += f" | reason: {reason}"
        self._log(LogCategory.EPOCH, msg)

    def stale(self, task: str, captured: int, current: int):
        """Log a deferred callback that found its generation superseded."""
        msg = f"stale {task} skipped | captured:{captured} current:{current}"
        self._log(LogCategory.EPOCH, msg)

    def mode(self, message: str):
        """Log mode dispatch or engine state changes."""
        self._log(LogCategory.MODE, message)

    def narration(self, title: str, fragment: str, pitch: float, rate: float, volume: float):
        """Log a spoken fragment."""
        msg = f"{title[:20]:20} | pitch:{pitch:4.2f} | rate:{rate:4.2f} | vol:{volume:4.2f}"
        if self.config.detail_level >= 2:
            msg += f" | \"{fragment[:40]}\""
        self._log(LogCategory.NARRATION, msg)

    def melody_note(self, title: str, freq: float, waveform: str, duration: float, volume: float):
        """Log a melody note."""
        msg = f"{title[:20]:20} | {freq:7.2f}Hz | {waveform:8} | dur:{duration:4.2f}s | vol:{volume:4.2f}"
        self._log(LogCategory.MELODY, msg)

    def scheduler(self, message: str):
        """Log timer activity."""
        if self.config.detail_level >= 2:
            self._log(LogCategory.SCHEDULER, message)

    def general(self, message: str):
        """Log general audio event."""
        self._log(LogCategory.GENERAL, message)

    # === Helper Methods ===

    def _pan_indicator(self, pan: float) -> str:
        """Create a visual pan indicator: [#  |   ] is hard left."""
        width = 7
        center = width // 2
        pos = int((max(-1.0, min(1.0, pan)) + 1) / 2 * (width - 1))
        indicator = [' '] * width
        indicator[center] = '|'
        indicator[pos] = '#'
        return '[' + ''.join(indicator) + ']'

    def _angle_to_direction(self, angle: float) -> str:
        """Convert angle to direction string."""
        abs_angle = abs(angle)
        if abs_angle <= 22.5:
            return "FRONT"
        elif abs_angle <= 67.5:
            return "F-RIGHT" if angle > 0 else "F-LEFT"
        elif abs_angle <= 112.5:
            return "RIGHT" if angle > 0 else "LEFT"
        elif abs_angle <= 157.5:
            return "B-RIGHT" if angle > 0 else "B-LEFT"
        else:
            return "BEHIND"


# Global logger instance
audio_log = AudioEventLogger()


def set_audio_logging(enabled: bool):
    """Enable or disable audio logging globally."""
    audio_log.enable(enabled)
