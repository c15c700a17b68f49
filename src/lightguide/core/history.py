"""Append-only log of played notes."""

import logging
import threading
from typing import Optional

from lightguide.models import PlayedNoteEvent

logger = logging.getLogger(__name__)


class NoteHistory:
    """
    Time-ordered log of PlayedNoteEvent, safe to scan while notes are appended.

    Events are only ever appended to the backing list; clearing or trimming
    replaces the list instead of mutating it. A reader takes the list and its
    length under the lock and scans that prefix, so it sees a consistent
    snapshot without holding the lock during the scan.
    """

    def __init__(self, max_events: int = 10_000):
        """
        Args:
            max_events: Upper bound on stored events; the oldest half is
                dropped when it is exceeded.
        """
        self._max_events = max_events
        self._events: list[PlayedNoteEvent] = []
        self._appended = 0
        self._lock = threading.Lock()

    def append(self, event: PlayedNoteEvent) -> None:
        """Append a played note. Must be called in arrival order."""
        with self._lock:
            if len(self._events) >= self._max_events:
                self._events = self._events[len(self._events) // 2:]
                logger.debug(f"Note history trimmed to {len(self._events)} events")
            self._events.append(event)
            self._appended += 1

    def _snapshot(self) -> tuple[list[PlayedNoteEvent], int]:
        with self._lock:
            return self._events, len(self._events)

    def find_last_before(
        self,
        note_number: int,
        not_earlier_than: float,
        not_later_than: Optional[float] = None,
    ) -> Optional[PlayedNoteEvent]:
        """
        Most recent event for note_number with timestamp >= not_earlier_than.

        Args:
            note_number: MIDI note to look for
            not_earlier_than: Floor timestamp; older events are not considered
            not_later_than: Optional ceiling; newer events are skipped
        """
        events, length = self._snapshot()
        for i in range(length - 1, -1, -1):
            event = events[i]
            if event.timestamp < not_earlier_than:
                break
            if not_later_than is not None and event.timestamp > not_later_than:
                continue
            if event.note_number == note_number:
                return event
        return None

    def find_first_after(self, note_number: int, after: float) -> Optional[PlayedNoteEvent]:
        """Earliest event for note_number with timestamp strictly after `after`."""
        events, length = self._snapshot()
        found = None
        for i in range(length - 1, -1, -1):
            event = events[i]
            if event.timestamp <= after:
                break
            if event.note_number == note_number:
                found = event
        return found

    def snapshot(self) -> list[PlayedNoteEvent]:
        """Copy of all stored events."""
        events, length = self._snapshot()
        return events[:length]

    def last(self) -> Optional[PlayedNoteEvent]:
        events, length = self._snapshot()
        return events[length - 1] if length else None

    @property
    def appended_count(self) -> int:
        """Events appended since the last clear(), including trimmed ones."""
        with self._lock:
            return self._appended

    def clear(self) -> int:
        """
        Discard all events.

        Returns:
            The number of events appended since the previous clear
        """
        with self._lock:
            self._events = []
            appended, self._appended = self._appended, 0
        return appended

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
