"""Voice Registry for Historical Friction.

Tracks the live voice set of the current generation plus voices that are
still draining their release after being torn down:
- live voices receive heading updates and are counted
- draining voices only advance until their release completes and they sever
- finished voices (ended notes) are pruned and disposed every frame
"""

from typing import List

from audio.logging import audio_log
from fmod_audio import is_expected_error


class VoiceRegistry:
    """Owns every voice created by the mode strategies."""

    def __init__(self):
        self._live: List = []
        self._draining: List = []

    def add(self, voice):
        """Register a started voice as live."""
        self._live.append(voice)

    def __len__(self):
        return len(self._live)

    def __iter__(self):
        return iter(list(self._live))

    @property
    def voices(self) -> tuple:
        """Snapshot of the live voices."""
        return tuple(self._live)

    @property
    def count(self) -> int:
        return len(self._live)

    @property
    def draining_count(self) -> int:
        return len(self._draining)

    @property
    def draining(self) -> tuple:
        return tuple(self._draining)

    def repan_all(self, heading: float):
        """Fan a heading change out to every live voice."""
        for voice in list(self._live):
            self._isolated(voice, voice.repan, 'repan', heading)

    def update(self, dt: float) -> int:
        """Advance all voices, dispose finished ones.

        Args:
            dt: Delta time in seconds

        Returns:
            Number of live voices pruned this frame
        """
        finished = []
        for voice in list(self._live):
            self._isolated(voice, voice.update, 'update', dt)
            if voice.is_finished:
                finished.append(voice)

        for voice in finished:
            self._live.remove(voice)
            self._isolated(voice, voice.dispose, 'dispose')
            audio_log('DEBUG', "Pruned finished voice", {'voice': voice.name})

        for voice in list(self._draining):
            self._isolated(voice, voice.update, 'update', dt)
            if voice.is_disposed or voice.is_finished:
                if not voice.is_disposed:
                    self._isolated(voice, voice.dispose, 'dispose')
                self._draining.remove(voice)

        return len(finished)

    def release_all(self) -> int:
        """Stop then dispose every live voice and clear the live set.

        Each call is isolated so one failing voice never prevents the
        teardown of the others. Voices still releasing move to the
        draining set.

        Returns:
            Number of voices released
        """
        voices = self._live
        self._live = []
        for voice in voices:
            self._isolated(voice, voice.stop, 'stop')
            self._isolated(voice, voice.dispose, 'dispose')
            if voice.is_releasing:
                self._draining.append(voice)

        if voices:
            audio_log('DEBUG', "Released voices", {
                'released': len(voices),
                'draining': len(self._draining)
            })
        return len(voices)

    def sever_draining(self):
        """Cut draining voices off immediately (used at shutdown)."""
        for voice in self._draining:
            self._isolated(voice, voice.sever, 'sever')
        self._draining.clear()

    def get_status(self) -> dict:
        """Get status information about the registry."""
        kinds = {}
        for voice in self._live:
            kinds[voice.kind] = kinds.get(voice.kind, 0) + 1
        return {
            'live': len(self._live),
            'draining': len(self._draining),
            'kinds': kinds
        }

    def _isolated(self, voice, action, what, *args):
        try:
            action(*args)
        except Exception as e:
            if not is_expected_error(e):
                audio_log('WARNING', f"Voice {what} failed", {
                    'voice': getattr(voice, 'name', repr(voice)),
                    'error': str(e)
                })
