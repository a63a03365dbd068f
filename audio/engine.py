"""
Sonification Engine for Historical Friction.

Owns the audio session: the FMOD context, the live voice set, the timers and
the narrator. Each update() tears down the previous generation and asks the
selected mode strategy to build a new one.

Generations are tracked by an epoch counter. stop_all() is the only place
that increments it; every deferred callback captures the epoch it was
created under and does nothing once is_current(epoch) turns false.

Usage:
    engine = SonificationEngine.get_instance()
    engine.update(SonificationMode.AMBIENT, places, radius=1000, heading=0)

    # In main loop:
    engine.update_frame(dt)

    # Heading changes only re-pan:
    engine.set_heading(90)
"""

import math
import random
from enum import Enum
from typing import Optional

from fmod_audio import SynthAudio
from audio.audio_logger import audio_log as event_log
from audio.logging import AudioLogger
from audio.narrator import Narrator
from audio.scheduler import Scheduler
from audio.voice_registry import VoiceRegistry
from modes import MODE_STRATEGIES
from state.app_state import SonificationMode
from state.constants import MAX_CHANNELS, VOLUME_STEP
from utils.helpers import normalize_angle


class EngineState(Enum):
    """Engine lifecycle states."""
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    PLAYING_AMBIENT = "playing_ambient"
    PLAYING_CACOPHONY = "playing_cacophony"
    PLAYING_MELODY = "playing_melody"


PLAYING_STATES = {
    SonificationMode.AMBIENT: EngineState.PLAYING_AMBIENT,
    SonificationMode.CACOPHONY: EngineState.PLAYING_CACOPHONY,
    SonificationMode.MELODY: EngineState.PLAYING_MELODY,
}


class SonificationEngine:
    """Process-wide sonification session."""

    _instance = None

    @classmethod
    def get_instance(cls) -> 'SonificationEngine':
        """Get the shared engine, creating it on first use."""
        if cls._instance is None:
            cls._instance = SonificationEngine()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Shut the shared engine down and forget it."""
        if cls._instance is not None:
            cls._instance.cleanup()
        cls._instance = None

    def __init__(self, audio: Optional[SynthAudio] = None, narrator: Optional[Narrator] = None,
                 scheduler: Optional[Scheduler] = None, rng: Optional[random.Random] = None):
        """Create an engine. Nothing touches FMOD until init().

        Args:
            audio: Output context (defaults to a pyfmodex-backed SynthAudio)
            narrator: Speech narrator (defaults to a pyttsx3-backed Narrator)
            scheduler: Timer queue advanced by update_frame()
            rng: Randomness for synthesis parameters
        """
        self.audio = audio or SynthAudio()
        self.narrator = narrator or Narrator()
        self.scheduler = scheduler or Scheduler()
        self.rng = rng or random.Random()
        self.registry = VoiceRegistry()
        self._strategies = {mode: cls(self) for mode, cls in MODE_STRATEGIES.items()}
        self._epoch = 0
        self._heading = 0.0
        self._state = EngineState.UNINITIALIZED
        self._suspend_pending = False
        self._logger = AudioLogger.get_instance()

    # === Lifecycle ===

    def init(self) -> bool:
        """Acquire the output context (idempotent).

        Returns:
            True if the engine can make sound
        """
        if self.audio.is_initialized:
            return True
        if not self.audio.init(max_channels=MAX_CHANNELS):
            return False
        self.narrator.init()
        return True

    def resume(self) -> bool:
        """Make sure the context exists and the mixer is running."""
        if not self.init():
            return False
        self._suspend_pending = False
        running = self.audio.resume()
        if running and self._state == EngineState.UNINITIALIZED:
            self._set_state(EngineState.READY)
        return running

    def cleanup(self):
        """Silence everything and release the output context."""
        self.stop_all()
        self.registry.sever_draining()
        self.narrator.cleanup()
        self.audio.cleanup()
        self._set_state(EngineState.UNINITIALIZED)

    # === Control ===

    def update(self, mode, places, radius: float, heading: float):
        """Replace the current sound with the given mode over the given places.

        Args:
            mode: SonificationMode or its member name
            places: Places to sonify (empty = silence)
            radius: Listening radius in meters
            heading: Listener heading in degrees
        """
        if isinstance(heading, (int, float)) and math.isfinite(heading):
            self._heading = normalize_angle(heading)

        if not self.resume():
            self._logger.warning("Audio unavailable, update ignored")
            return

        self.stop_all()
        epoch = self._epoch

        places = list(places or [])
        if not places:
            event_log.mode("no places: silence")
            return

        resolved = self._resolve_mode(mode)
        if resolved is None:
            self._logger.warning("Unknown sonification mode", {'mode': mode})
            return

        self._strategies[resolved].build(places, radius, epoch)
        self._set_state(PLAYING_STATES[resolved])

    def stop_all(self):
        """Start a new generation and tear the current one down."""
        old_epoch = self._epoch
        self._epoch += 1
        event_log.epoch(old_epoch, self._epoch, reason="stop_all")

        released = self.registry.release_all()
        cancelled = self.scheduler.cancel_all()
        self.narrator.cancel()

        if released or cancelled:
            self._logger.debug("Stopped all voices", {
                'voices': released,
                'timers': cancelled,
                'epoch': self._epoch
            })
        if self._state in PLAYING_STATES.values():
            self._set_state(EngineState.READY)

    def suspend(self):
        """Stop everything and suspend the mixer once the release fades end.

        The next update() resumes it.
        """
        self.stop_all()
        if self.audio.is_initialized:
            self._suspend_pending = True

    def set_heading(self, heading: float):
        """Re-pan every live voice for a new listener heading."""
        if not isinstance(heading, (int, float)) or not math.isfinite(heading):
            return
        self._heading = normalize_angle(heading)
        self.registry.repan_all(self._heading)

    def update_frame(self, dt: float):
        """Advance timers, automation and speech. Call every frame.

        Args:
            dt: Delta time in seconds
        """
        dt = max(0.0, dt)
        self.scheduler.advance(dt)
        self.registry.update(dt)
        self.narrator.update()
        self.audio.update()
        if self._suspend_pending and self.registry.draining_count == 0:
            self._suspend_pending = False
            self.audio.suspend()

    # === Used by the mode strategies ===

    def is_current(self, epoch: int) -> bool:
        """Check whether a captured epoch still names the live generation."""
        return epoch == self._epoch

    def add_voice(self, voice):
        """Register a started voice with the live generation."""
        self.registry.add(voice)

    # === Volume ===

    def set_master_volume(self, volume: float):
        self.audio.set_master_volume(volume)

    def adjust_volume(self, delta: float = VOLUME_STEP) -> float:
        """Nudge the master volume, returning the new value."""
        self.audio.set_master_volume(self.audio.get_master_volume() + delta)
        return self.audio.get_master_volume()

    # === Introspection ===

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def heading(self) -> float:
        return self._heading

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def voices(self) -> tuple:
        return self.registry.voices

    @property
    def voice_count(self) -> int:
        return self.registry.count

    def get_status(self) -> dict:
        status = self.registry.get_status()
        status.update({
            'state': self._state.value,
            'epoch': self._epoch,
            'heading': self._heading,
            'timers': self.scheduler.pending_count,
        })
        return status

    # === Internal ===

    def _resolve_mode(self, mode) -> Optional[SonificationMode]:
        if isinstance(mode, SonificationMode):
            return mode
        if isinstance(mode, str):
            try:
                return SonificationMode[mode.upper()]
            except KeyError:
                return None
        return None

    def _set_state(self, state: EngineState):
        if state != self._state:
            event_log.mode(f"state {self._state.value} -> {state.value}")
            self._logger.info("Engine state change", {
                'from': self._state.value,
                'to': state.value
            })
            self._state = state
