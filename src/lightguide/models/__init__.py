"""Data models for the light guide."""

from .config import DEFAULT_CONFIG_PATH, AppConfig
from .enums import OperatingMode, TimingCategory
from .layout import LayoutState
from .notes import GuideNoteOnset, PlayedNoteEvent, TimingResult, note_identifier
from .stats import AggregatedStats

__all__ = [
    "AppConfig",
    "DEFAULT_CONFIG_PATH",
    # Models
    "AggregatedStats",
    "GuideNoteOnset",
    "LayoutState",
    "PlayedNoteEvent",
    "TimingResult",
    # Enums
    "OperatingMode",
    "TimingCategory",
    # Helpers
    "note_identifier",
]
