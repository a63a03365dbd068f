"""Audio module for Historical Friction - synthesis voices, timers and narration.

The engine lives in audio.engine and is imported from there; it depends on
the modes package, which builds on the modules exported here.
"""

from .spatial import SpatialAudio, spatial
from .logging import AudioLogger, audio_log
from .scheduler import Scheduler, TimerHandle
from .voices import (
    Voice, PartialClusterVoice, DroneVoice, MurmurVoice, NoiseBedVoice, NoteVoice,
)
from .voice_registry import VoiceRegistry
from .narrator import Narrator, Utterance, pick_fragment
