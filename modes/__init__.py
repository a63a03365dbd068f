"""Sonification mode strategies for Historical Friction."""

from state.app_state import SonificationMode

from .base import ModeStrategy, proximity_score, activity_score
from .ambient import AmbientMode
from .cacophony import CacophonyMode
from .melody import MelodyMode

MODE_STRATEGIES = {
    SonificationMode.AMBIENT: AmbientMode,
    SonificationMode.CACOPHONY: CacophonyMode,
    SonificationMode.MELODY: MelodyMode,
}
