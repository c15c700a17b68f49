"""Observer protocols.

Components publish to observers through ObserverManager; anything that
implements the matching method can subscribe (visualisations, loggers,
the pad highlighter, tests).
"""

from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from lightguide.core.grid import GridMap
    from lightguide.midi.messages import MidiEvent
    from lightguide.models import AggregatedStats, LayoutState, TimingResult


class NoteSource(Enum):
    """Which input a note event came from."""

    PLAYED = "played"  # Performer's instrument
    GUIDE = "guide"  # Reference track


@runtime_checkable
class NoteObserver(Protocol):
    """Receives decoded note events from both inputs."""

    def on_note_event(self, source: NoteSource, event: "MidiEvent") -> None:
        """
        Handle a note on/off.

        Note:
            Called from mido's I/O thread; keep it fast and thread-safe.
        """
        ...


@runtime_checkable
class LayoutObserver(Protocol):
    """Receives instrument layout changes."""

    def on_layout_changed(self, layout: "LayoutState", grid: "GridMap") -> None:
        """
        Handle a new layout.

        Args:
            layout: The new layout state
            grid: Fully built grid for the new layout
        """
        ...


@runtime_checkable
class TimingObserver(Protocol):
    """Receives a result for every classified guide note."""

    def on_timing_result(self, result: "TimingResult") -> None:
        """
        Note:
            Called from a classifier worker thread.
        """
        ...


@runtime_checkable
class StatisticsObserver(Protocol):
    """Receives the statistics of a finished practice take."""

    def on_statistics(self, stats: "AggregatedStats") -> None:
        ...
