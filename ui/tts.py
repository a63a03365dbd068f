"""
Text-to-Speech Manager for Historical Friction.

Provides a wrapper around cytolk for screen reader integration,
with throttling support to prevent announcement spam.
Announcements (mode, radius, heading) go to the user's screen reader;
article narration uses the engine's own Narrator.
"""

from audio.logging import audio_log


class TTSManager:
    """Manages text-to-speech announcements via cytolk/screen reader."""

    def __init__(self):
        """Initialize the TTS manager."""
        self._initialized = False
        self._tolk = None
        self._last_announcements = {}  # key -> timestamp for throttling

    def init(self) -> bool:
        """Initialize the TTS system.

        Screen reader support is Windows-only; elsewhere announcements
        are printed instead.
        """
        if self._initialized:
            return True
        try:
            from cytolk import tolk
            tolk.load()
        except Exception as e:
            audio_log('WARNING', "Screen reader unavailable, announcements printed only", {
                'error': str(e)
            })
            return False
        self._tolk = tolk
        self._initialized = True
        return True

    def cleanup(self):
        """Clean up TTS resources."""
        if self._initialized:
            self._tolk.unload()
            self._initialized = False

    def speak(self, text: str, interrupt: bool = True):
        """Speak text through the screen reader.

        Args:
            text: The text to speak
            interrupt: If True, interrupts any current speech
        """
        print(text)
        if self._initialized:
            self._tolk.speak(text, interrupt=interrupt)

    def silence(self):
        """Stop any screen reader speech."""
        if self._initialized:
            self._tolk.silence()

    def speak_throttled(self, key: str, text: str, cooldown_ms: int, current_time: int) -> bool:
        """Speak text with throttling to prevent spam.

        Args:
            key: Unique key for this announcement type
            text: The text to speak
            cooldown_ms: Minimum time between announcements in milliseconds
            current_time: Current time in milliseconds

        Returns:
            True if the text was spoken, False if throttled
        """
        last_time = self._last_announcements.get(key)

        if last_time is None or current_time - last_time >= cooldown_ms:
            self.speak(text)
            self._last_announcements[key] = current_time
            return True

        return False

    def clear_throttle(self, key: str = None):
        """Clear throttle state for a key or all keys.

        Args:
            key: Specific key to clear, or None to clear all
        """
        if key is None:
            self._last_announcements.clear()
        elif key in self._last_announcements:
            del self._last_announcements[key]

    @property
    def is_initialized(self) -> bool:
        """Check if TTS is initialized."""
        return self._initialized
