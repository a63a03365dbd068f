"""Shared place-to-sound mapping for the mode strategies."""

import math
from typing import Tuple

from state.constants import ACTIVITY_LOG_DIVISOR
from utils.helpers import clamp


def proximity_score(distance: float, radius: float) -> float:
    """Closeness in [0, 1]: 1 at the listener, 0 at or beyond the radius."""
    if radius <= 0:
        return 1.0 if distance <= 0 else 0.0
    return clamp(1.0 - distance / radius, 0.0, 1.0)


def activity_score(activity: float) -> float:
    """Log-compressed edit activity in [0, 1]; ~10,000 edits saturate."""
    return clamp(math.log10(max(0.0, activity) + 1.0) / ACTIVITY_LOG_DIVISOR, 0.0, 1.0)


class ModeStrategy:
    """Builds one mode's voice set for a generation.

    Strategies only add voices to the engine; teardown belongs to the
    engine's stop_all(). Deferred work must capture the epoch passed to
    build() and check engine.is_current(epoch) before acting.
    """

    mode = None

    def __init__(self, engine):
        self.engine = engine

    @property
    def audio(self):
        return self.engine.audio

    @property
    def rng(self):
        return self.engine.rng

    def build(self, places, radius: float, epoch: int):
        raise NotImplementedError

    def map_place(self, place, radius: float) -> Tuple[float, float]:
        """(proximity, activity) scores for a place."""
        return proximity_score(place.distance, radius), activity_score(place.activity)

    def start_voice(self, voice):
        """Start a voice at the current heading and register it."""
        voice.start(self.engine.heading)
        self.engine.add_voice(voice)
        return voice
