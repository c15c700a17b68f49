"""Core timing, grid and statistics logic (no MIDI I/O)."""

from .clock import Clock, ScheduledTask, SystemClock, VirtualClock
from .grid import INVALID_LABEL, GridMap, build_index, compute_grid, is_valid_note
from .history import NoteHistory
from .statistics import StatisticsAggregator, categorize_offset
from .timing import NoteTimingClassifier

__all__ = [
    "Clock",
    "ScheduledTask",
    "SystemClock",
    "VirtualClock",
    "GridMap",
    "INVALID_LABEL",
    "build_index",
    "compute_grid",
    "is_valid_note",
    "NoteHistory",
    "NoteTimingClassifier",
    "StatisticsAggregator",
    "categorize_offset",
]
