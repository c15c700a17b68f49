"""Pad highlighting on the LinnStrument.

A pad is lit with three control changes on the highlight channel:

    CC 20  column (x + 1, column 0 is the settings column)
    CC 21  row (y)
    CC 22  color (0 restores the pad's normal color)
"""

import logging
import threading
from typing import Optional

import mido

from lightguide.core.clock import Clock, ScheduledTask
from lightguide.core.grid import GridMap
from lightguide.midi import DeviceTransport
from lightguide.models import LayoutState

logger = logging.getLogger(__name__)

CC_COLUMN = 20
CC_ROW = 21
CC_COLOR = 22
COLOR_OFF = 0


class PadHighlighter:
    """
    Lights every pad that plays a note.

    Registered as a LayoutObserver so it always addresses the pads of the
    current layout; a layout change clears the whole surface.
    """

    def __init__(
        self,
        transport: DeviceTransport,
        clock: Clock,
        grid: GridMap,
        channel: int = 0,
        fade_out_delay: float = 200,
    ):
        self._transport = transport
        self._clock = clock
        self._grid = grid
        self.channel = channel
        self.fade_out_delay = fade_out_delay

        self._pending_clears: dict[int, ScheduledTask] = {}
        self._lock = threading.Lock()
        self._unavailable_logged = False

    @property
    def grid(self) -> GridMap:
        return self._grid

    def highlight_xy(self, x: int, y: int, color: int) -> bool:
        """Set the color of one pad. Returns False if the output is unavailable."""
        messages = (
            mido.Message("control_change", channel=self.channel, control=CC_COLUMN, value=x + 1),
            mido.Message("control_change", channel=self.channel, control=CC_ROW, value=y),
            mido.Message("control_change", channel=self.channel, control=CC_COLOR, value=color),
        )
        for message in messages:
            if not self._transport.send(message):
                if not self._unavailable_logged:
                    logger.debug("Instrument output unavailable, skipping highlights")
                    self._unavailable_logged = True
                return False
        self._unavailable_logged = False
        return True

    def highlight_note(self, note_number: int, color: int) -> int:
        """
        Light all pads of a note, cancelling a pending fade-out for it.

        Returns:
            Number of pads updated
        """
        self._cancel_clear(note_number)
        return self._set_note_color(note_number, color)

    def release_note(self, note_number: int, delay: Optional[float] = None) -> ScheduledTask:
        """Clear the pads of a note after the fade-out delay."""
        delay = self.fade_out_delay if delay is None else delay

        def clear() -> None:
            with self._lock:
                if self._pending_clears.get(note_number) is task:
                    del self._pending_clears[note_number]
            self._set_note_color(note_number, COLOR_OFF)

        with self._lock:
            previous = self._pending_clears.pop(note_number, None)
            if previous is not None:
                previous.cancel()
            task = self._clock.call_later(delay, clear)
            self._pending_clears[note_number] = task
        return task

    def reset_grid(self) -> None:
        """Clear every pad of the current grid."""
        with self._lock:
            pending = list(self._pending_clears.values())
            self._pending_clears.clear()
        for task in pending:
            task.cancel()

        grid = self._grid
        for x in range(grid.columns):
            for y in range(grid.rows):
                if not self.highlight_xy(x, y, COLOR_OFF):
                    return
        logger.debug("Instrument highlights reset")

    def on_layout_changed(self, layout: LayoutState, grid: GridMap) -> None:
        """LayoutObserver hook."""
        self._grid = grid
        self.reset_grid()

    def _cancel_clear(self, note_number: int) -> None:
        with self._lock:
            task = self._pending_clears.pop(note_number, None)
        if task is not None:
            task.cancel()

    def _set_note_color(self, note_number: int, color: int) -> int:
        updated = 0
        for x, y in self._grid.coordinates(note_number):
            if not self.highlight_xy(x, y, color):
                break
            updated += 1
        return updated
