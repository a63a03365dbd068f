"""AMBIENT mode: one sustained breathing partial cluster per nearby place."""

from audio.audio_logger import audio_log as event_log
from audio.voices import PartialClusterVoice
from state.app_state import SonificationMode
from state.constants import (
    AMBIENT_MAX_VOICES, AMBIENT_BASE_FREQ, AMBIENT_PROXIMITY_FREQ_SPAN,
    AMBIENT_ACTIVITY_FREQ_SHIFT, AMBIENT_MAX_PARTIALS, AMBIENT_FADE_IN,
    AMBIENT_VOLUME_SCALE, AMBIENT_VOLUME_FLOOR, AMBIENT_VOLUME_ACTIVITY,
    AMBIENT_BREATH_RATE_RANGE,
)

from .base import ModeStrategy


def partial_count(activity: float) -> int:
    return 1 + int(round(activity * (AMBIENT_MAX_PARTIALS - 1)))


def cluster_frequency(proximity: float, activity: float) -> float:
    return AMBIENT_BASE_FREQ + proximity * AMBIENT_PROXIMITY_FREQ_SPAN + activity * AMBIENT_ACTIVITY_FREQ_SHIFT


def cluster_level(proximity: float, activity: float) -> float:
    return AMBIENT_VOLUME_SCALE * proximity * (AMBIENT_VOLUME_FLOOR + AMBIENT_VOLUME_ACTIVITY * activity)


class AmbientMode(ModeStrategy):
    """Closer places sound higher and louder; busier ones richer."""

    mode = SonificationMode.AMBIENT

    def build(self, places, radius, epoch):
        selected = places[:AMBIENT_MAX_VOICES]
        for place in selected:
            proximity, activity = self.map_place(place, radius)
            partials = partial_count(activity)
            voice = PartialClusterVoice(
                self.audio, place,
                frequency=cluster_frequency(proximity, activity),
                partials=partials,
                level=cluster_level(proximity, activity),
                fade_in=AMBIENT_FADE_IN,
                breath_rates=[self.rng.uniform(*AMBIENT_BREATH_RATE_RANGE) for _ in range(partials)],
                breath_phases=[self.rng.random() for _ in range(partials)],
            )
            self.start_voice(voice)

        event_log.mode(f"ambient: {len(selected)} cluster(s) of {len(places)} place(s)")
        return len(selected)
