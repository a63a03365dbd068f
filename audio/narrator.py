"""
Speech Narrator for Historical Friction.

Speaks article fragments with per-utterance pitch, rate, volume and voice
through pyttsx3. The speech engine runs in external-loop mode so it is
pumped from the frame loop (update()) instead of blocking.
"""

import re
from dataclasses import dataclass
from typing import Optional

from audio.logging import audio_log
from state.constants import (
    NARRATION_MIN_FRAGMENT, NARRATION_BASE_RATE_WPM, NARRATION_BASE_PITCH,
)

SENTENCE_BREAK = re.compile(r'[.!?]')


@dataclass
class Utterance:
    """One spoken fragment and its voice settings."""
    text: str
    pitch: float = 1.0      # Multiplier, 1.0 = engine default
    rate: float = 1.0       # Multiplier of NARRATION_BASE_RATE_WPM
    volume: float = 1.0     # 0.0 - 1.0
    voice_index: Optional[int] = None


def pick_fragment(place, rng) -> str:
    """Pick a random sentence fragment from a place's extract (or title).

    Fragments are split on sentence punctuation and must be longer than
    NARRATION_MIN_FRAGMENT characters once stripped. Falls back to the title.
    """
    text = place.extract or place.title
    fragments = [s.strip() for s in SENTENCE_BREAK.split(text)]
    fragments = [s for s in fragments if len(s) > NARRATION_MIN_FRAGMENT]
    if not fragments:
        return place.title
    return rng.choice(fragments)


class Narrator:
    """Non-blocking speech output for narration."""

    def __init__(self, engine_factory=None):
        """Initialize the narrator.

        Args:
            engine_factory: Callable returning a pyttsx3-compatible engine.
                            Defaults to pyttsx3.init, imported on init().
        """
        self._engine_factory = engine_factory
        self._engine = None
        self._voices = []
        self._initialized = False
        self._in_loop = False
        self.spoken_count = 0

    def init(self) -> bool:
        """Start the speech engine. Failure leaves narration silent."""
        if self._initialized:
            return True
        try:
            factory = self._engine_factory
            if factory is None:
                import pyttsx3
                factory = pyttsx3.init
            self._engine = factory()
            self._voices = list(self._engine.getProperty('voices') or [])
            self._engine.startLoop(False)
            self._in_loop = True
        except Exception as e:
            audio_log('WARNING', "Speech engine unavailable, narration disabled", {'error': str(e)})
            self._engine = None
            return False

        self._initialized = True
        audio_log('INFO', "Narrator initialized", {'voices': len(self._voices)})
        return True

    @property
    def is_initialized(self) -> bool:
        """Check if the speech engine is running."""
        return self._initialized

    @property
    def voice_count(self) -> int:
        """Number of installed voices."""
        return len(self._voices)

    def speak(self, utterance: Utterance) -> bool:
        """Queue an utterance. Returns False if narration is unavailable."""
        if not self._initialized or not utterance.text:
            return False
        try:
            engine = self._engine
            engine.setProperty('rate', int(NARRATION_BASE_RATE_WPM * utterance.rate))
            engine.setProperty('volume', max(0.0, min(1.0, utterance.volume)))
            engine.setProperty('pitch', int(NARRATION_BASE_PITCH * utterance.pitch))
            if utterance.voice_index is not None and self._voices:
                voice = self._voices[utterance.voice_index % len(self._voices)]
                engine.setProperty('voice', voice.id)
            engine.say(utterance.text)
        except Exception as e:
            audio_log('WARNING', "Narration failed", {'error': str(e)})
            return False
        self.spoken_count += 1
        return True

    def cancel(self):
        """Stop current speech and drop queued utterances."""
        if not self._initialized:
            return
        try:
            self._engine.stop()
        except Exception as e:
            audio_log('WARNING', "Narration cancel failed", {'error': str(e)})

    def update(self):
        """Pump the speech engine. Call every frame."""
        if not self._initialized:
            return
        try:
            self._engine.iterate()
        except Exception as e:
            audio_log('DEBUG', "Speech iterate failed", {'error': str(e)})

    def cleanup(self):
        """Stop speech and shut the engine loop down."""
        if not self._initialized:
            return
        self.cancel()
        if self._in_loop:
            try:
                self._engine.endLoop()
            except Exception as e:
                audio_log('DEBUG', "Speech loop shutdown failed", {'error': str(e)})
            self._in_loop = False
        self._engine = None
        self._initialized = False
