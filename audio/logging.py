"""Engine diagnostics for Historical Friction.

FMOD failures, timer callbacks that raise and speech driver problems are
recorded here instead of propagating into the frame loop. Entries go to a
ring buffer; printing is toggled with F12, except errors, which always print.
"""

import time
from typing import Optional, Dict, Any, List

from state.constants import AUDIO_LOG_LEVEL, AUDIO_LOG_BUFFER


class AudioLogger:
    """Process-wide diagnostics sink shared by the engine, voices and narrator."""

    LEVELS = {
        'ERROR': 0,    # Engine is silent (no output context, no speech driver)
        'WARNING': 1,  # One call failed, sound carries on
        'INFO': 2,     # Context and state changes
        'DEBUG': 3     # Teardown counts
    }

    _instance = None

    @classmethod
    def get_instance(cls) -> 'AudioLogger':
        if cls._instance is None:
            cls._instance = AudioLogger(level=AUDIO_LOG_LEVEL)
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Forget the shared logger; tests start each case with an empty buffer."""
        cls._instance = None

    def __init__(self, level: str = 'WARNING', enabled: bool = False):
        """
        Args:
            level: Most verbose level kept in the buffer
            enabled: Print entries as they arrive
        """
        self.level_threshold = self.LEVELS.get(level, 1)
        self.enabled = enabled
        self._log_buffer: List[Dict[str, Any]] = []
        self._max_buffer = AUDIO_LOG_BUFFER
        self._start_time = time.time()

    def enable(self, enabled: bool = True):
        self.enabled = enabled
        if enabled:
            print("[SONIFY] Debug logging ENABLED (F12 to disable)")
        else:
            print("[SONIFY] Debug logging DISABLED")

    def toggle(self) -> bool:
        """Flip printing on/off (F12). Returns the new state."""
        self.enable(not self.enabled)
        return self.enabled

    def log(self, level: str, message: str, context: Optional[Dict[str, Any]] = None):
        """Record one event.

        Args:
            level: 'ERROR', 'WARNING', 'INFO' or 'DEBUG'
            message: Fixed text, so entries can be matched
            context: Variable details (handles, error strings, counts)
        """
        level_val = self.LEVELS.get(level, 1)
        if level_val > self.level_threshold:
            return

        elapsed = time.time() - self._start_time
        entry = {
            'time': elapsed,
            'level': level,
            'message': message,
            'context': context
        }

        self._log_buffer.append(entry)
        if len(self._log_buffer) > self._max_buffer:
            self._log_buffer.pop(0)

        if self.enabled or level_val == 0:
            ctx_str = ""
            if context:
                ctx_str = " | " + ", ".join(f"{k}={v}" for k, v in context.items())
            print(f"[SONIFY:{level}] {elapsed:.3f}s {message}{ctx_str}")

    def error(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.log('ERROR', message, context)

    def warning(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.log('WARNING', message, context)

    def info(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.log('INFO', message, context)

    def debug(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.log('DEBUG', message, context)

    def get_recent_logs(self, count: int = 20, level: Optional[str] = None) -> List[Dict[str, Any]]:
        """Latest buffered entries, optionally for one level only."""
        entries = self._log_buffer
        if level is not None:
            entries = [e for e in entries if e['level'] == level]
        return entries[-count:]


def audio_log(level: str, message: str, context: Optional[Dict[str, Any]] = None):
    """Record an event on the shared logger."""
    AudioLogger.get_instance().log(level, message, context)
