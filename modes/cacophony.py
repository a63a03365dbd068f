"""CACOPHONY mode: drone, murmuring crowd, noise bed and overlapping narration."""

from audio.audio_logger import audio_log as event_log
from audio.narrator import Utterance, pick_fragment
from audio.voices import DroneVoice, MurmurVoice, NoiseBedVoice
from state.app_state import SonificationMode
from state.constants import (
    DRONE_FREQ, DRONE_FILTER_CUTOFF, DRONE_LEVEL, DRONE_FADE_IN,
    MURMUR_MAX, MURMUR_FREQ_RANGE, MURMUR_FORMANT_RANGE, MURMUR_FORMANT_Q,
    MURMUR_WOBBLE_RATE_RANGE, MURMUR_WOBBLE_DEPTH, MURMUR_LEVEL, MURMUR_FADE_IN_RANGE,
    NOISE_FILTER_FREQ, NOISE_FILTER_Q, NOISE_LEVEL_PER_PLACE, NOISE_LEVEL_MAX, NOISE_FADE_IN,
    NARRATION_BASE_INTERVAL, NARRATION_INTERVAL_STEP, NARRATION_MIN_INTERVAL,
    NARRATION_PITCH_RANGE, NARRATION_RATE_RANGE, NARRATION_MIN_VOLUME,
)

from .base import ModeStrategy


def murmur_count(place_count: int) -> int:
    return min(place_count // 2, MURMUR_MAX)


def noise_level(place_count: int) -> float:
    return min(NOISE_LEVEL_PER_PLACE * place_count, NOISE_LEVEL_MAX)


def narration_interval(place_count: int) -> float:
    return max(NARRATION_MIN_INTERVAL, NARRATION_BASE_INTERVAL - NARRATION_INTERVAL_STEP * place_count)


class CacophonyMode(ModeStrategy):
    """Many overlapping voices; more places means a denser crowd."""

    mode = SonificationMode.CACOPHONY

    def __init__(self, engine):
        super().__init__(engine)
        self._timers = {}  # epoch -> narration timer

    def build(self, places, radius, epoch):
        count = len(places)
        rng = self.rng

        self.start_voice(DroneVoice(
            self.audio, DRONE_FREQ, DRONE_FILTER_CUTOFF, DRONE_LEVEL, DRONE_FADE_IN))

        for i in range(murmur_count(count)):
            self.start_voice(MurmurVoice(
                self.audio, places[i % count],
                frequency=rng.uniform(*MURMUR_FREQ_RANGE),
                formant=rng.uniform(*MURMUR_FORMANT_RANGE),
                q=MURMUR_FORMANT_Q,
                wobble_rate=rng.uniform(*MURMUR_WOBBLE_RATE_RANGE),
                wobble_depth=MURMUR_WOBBLE_DEPTH,
                level=MURMUR_LEVEL,
                fade_in=rng.uniform(*MURMUR_FADE_IN_RANGE),
            ))

        self.start_voice(NoiseBedVoice(
            self.audio, NOISE_FILTER_FREQ, NOISE_FILTER_Q, noise_level(count), NOISE_FADE_IN))

        self._timers = {e: t for e, t in self._timers.items() if not t.cancelled}
        self.chatter(places, radius, epoch)
        interval = narration_interval(count)
        self._timers[epoch] = self.engine.scheduler.call_every(
            interval, self.chatter, places, radius, epoch, name='narration')

        event_log.mode(f"cacophony: {murmur_count(count)} murmur(s), narration every {interval:.1f}s")

    def chatter(self, places, radius, epoch):
        """Speak one random fragment from a random place."""
        if not self.engine.is_current(epoch):
            timer = self._timers.pop(epoch, None)
            if timer is not None:
                timer.cancel()
            event_log.stale('narration', epoch, self.engine.epoch)
            return
        if not places:
            return

        rng = self.rng
        place = rng.choice(places)
        proximity, _ = self.map_place(place, radius)
        narrator = self.engine.narrator
        utterance = Utterance(
            text=pick_fragment(place, rng),
            pitch=rng.uniform(*NARRATION_PITCH_RANGE),
            rate=rng.uniform(*NARRATION_RATE_RANGE),
            volume=max(NARRATION_MIN_VOLUME, proximity),
            voice_index=rng.randrange(narrator.voice_count) if narrator.voice_count else None,
        )
        if narrator.speak(utterance):
            event_log.narration(place.title, utterance.text, utterance.pitch,
                                utterance.rate, utterance.volume)
