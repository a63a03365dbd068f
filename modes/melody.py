"""MELODY mode: places take turns playing one note each, in a loop."""

from audio.audio_logger import audio_log as event_log
from audio.voices import NoteVoice
from state.app_state import SonificationMode
from state.constants import (
    MELODY_SCALE, MELODY_WAVEFORMS,
    MELODY_FILTER_BASE_CUTOFF, MELODY_FILTER_CUTOFF_SPAN, MELODY_FILTER_BASE_Q, MELODY_FILTER_Q_SPAN,
    MELODY_BASE_DURATION, MELODY_DURATION_SPAN,
    MELODY_VOLUME_SCALE, MELODY_MIN_PROXIMITY, MELODY_VOLUME_FLOOR, MELODY_VOLUME_ACTIVITY,
    MELODY_ECHO_ENABLED, MELODY_ECHO_DELAY_MS, MELODY_ECHO_FEEDBACK, MELODY_ECHO_WET_DB,
    MELODY_BASE_STEP, MELODY_STEP_ACTIVITY, MELODY_STEP_JITTER, MELODY_MIN_STEP,
)

from .base import ModeStrategy


def note_frequency(place_id: int) -> float:
    return MELODY_SCALE[place_id % len(MELODY_SCALE)]


def note_waveform(activity: float) -> str:
    """sine below 1/3, triangle below 2/3, sawtooth above."""
    tier = min(int(activity * len(MELODY_WAVEFORMS)), len(MELODY_WAVEFORMS) - 1)
    return MELODY_WAVEFORMS[tier]


def note_volume(proximity: float, activity: float) -> float:
    return (MELODY_VOLUME_SCALE * max(MELODY_MIN_PROXIMITY, proximity)
            * (MELODY_VOLUME_FLOOR + MELODY_VOLUME_ACTIVITY * activity))


class MelodyMode(ModeStrategy):
    """Cursor walks the place list; busier places ring longer, brighter, sooner."""

    mode = SonificationMode.MELODY

    def build(self, places, radius, epoch):
        event_log.mode(f"melody: {len(places)} place(s) in rotation")
        self.step(places, radius, epoch, 0)

    def step(self, places, radius, epoch, index):
        """Play the note at index and arm the next step."""
        if not self.engine.is_current(epoch):
            event_log.stale('melody step', epoch, self.engine.epoch)
            return
        if not places:
            return

        place = places[index % len(places)]
        proximity, activity = self.map_place(place, radius)
        frequency = note_frequency(place.id)
        waveform = note_waveform(activity)
        duration = MELODY_BASE_DURATION + MELODY_DURATION_SPAN * activity
        volume = note_volume(proximity, activity)
        echo = None
        if MELODY_ECHO_ENABLED:
            echo = {
                'delay_ms': MELODY_ECHO_DELAY_MS,
                'feedback': MELODY_ECHO_FEEDBACK,
                'wet_db': MELODY_ECHO_WET_DB,
            }

        self.start_voice(NoteVoice(
            self.audio, place,
            frequency=frequency,
            waveform=waveform,
            cutoff=MELODY_FILTER_BASE_CUTOFF + MELODY_FILTER_CUTOFF_SPAN * activity,
            q=MELODY_FILTER_BASE_Q + MELODY_FILTER_Q_SPAN * activity,
            volume=volume,
            duration=duration,
            echo=echo,
        ))
        event_log.melody_note(place.title, frequency, waveform, duration, volume)

        delay = max(MELODY_MIN_STEP,
                    MELODY_BASE_STEP - MELODY_STEP_ACTIVITY * activity
                    + self.rng.random() * MELODY_STEP_JITTER)
        self.engine.scheduler.call_later(
            delay, self.step, places, radius, epoch, (index + 1) % len(places), name='melody')
