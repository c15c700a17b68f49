"""Keeps the pad layout in step with the LinnStrument's own settings.

The device does not announce setting changes, so the layout is polled: the
split-left octave, split-left transpose, row offset and tempo parameters are
queried one after another, the note layout is derived from them and, if it
differs from the current one, a new GridMap is built and published to
layout observers.

Polling is debounced (``min_interval``) and at most one refresh is in flight;
a refresh requested while another is running is dropped, not queued. A failed
refresh is logged once, applies nothing and delays the next attempt by
``failure_penalty``.
"""

import logging
import threading
from typing import Optional

import mido

from lightguide.core.clock import Clock, ScheduledTask
from lightguide.core.grid import GridMap
from lightguide.exceptions import (
    DeviceError,
    ParameterTimeoutError,
    TransportUnavailableError,
    handle_errors,
)
from lightguide.midi import DeviceTransport, MidiEvent, ParameterResponse
from lightguide.models import LayoutState, OperatingMode
from lightguide.protocols import LayoutObserver
from lightguide.utils import ObserverManager

from . import nrpn

logger = logging.getLogger(__name__)

BASE_NOTE = 30
OCTAVE_ZERO = 5
TRANSPOSE_ZERO = 7


def derive_layout(
    octave: int,
    transpose: int,
    row_offset: int,
    tempo: Optional[int],
    current: LayoutState,
) -> LayoutState:
    """
    Layout for raw parameter values read from the device.

    Args:
        octave: Split-left octave (5 = no octave shift)
        transpose: Split-left transpose (7 = no transposition)
        row_offset: Row offset in half steps; 0 means no overlap, i.e. one
            full row width
        tempo: Tempo in BPM, if known
        current: Layout to take the device geometry from
    """
    start_note_number = BASE_NOTE + (octave - OCTAVE_ZERO) * 12 + (transpose - TRANSPOSE_ZERO)
    row_interval = row_offset if row_offset != 0 else current.columns
    return current.model_copy(
        update={
            "start_note_number": start_note_number,
            "row_interval": row_interval,
            "bpm": tempo,
        }
    )


class DeviceStateSync:
    """Queries device parameters and owns the current LayoutState and GridMap."""

    def __init__(
        self,
        transport: DeviceTransport,
        clock: Clock,
        layout: LayoutState,
        *,
        channel: int = 0,
        param_timeout: float = 300,
        min_interval: float = 200,
        failure_penalty: float = 3000,
    ):
        """
        Args:
            transport: Connection to the instrument
            clock: Time source for timeouts and debouncing
            layout: Layout assumed until the first successful refresh
            channel: MIDI channel for NRPN messages
            param_timeout: How long a single parameter query waits (ms)
            min_interval: Minimum time between two refreshes (ms)
            failure_penalty: Extra delay before retrying after a failure (ms)
        """
        self._transport = transport
        self._clock = clock
        self.channel = channel
        self.param_timeout = param_timeout
        self.min_interval = min_interval
        self.failure_penalty = failure_penalty

        # Layout and grid are swapped together in one assignment
        self._state: tuple[LayoutState, GridMap] = (layout, GridMap(layout))

        self._sync_lock = threading.Lock()
        self._query_lock = threading.Lock()
        self._next_sync_at = float("-inf")
        self._failure_warned = False
        self._poll_task: Optional[ScheduledTask] = None
        self._observers = ObserverManager[LayoutObserver](observer_type_name="layout")

    @property
    def layout(self) -> LayoutState:
        return self._state[0]

    @property
    def grid(self) -> GridMap:
        return self._state[1]

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.cancelled

    def register_observer(self, observer: LayoutObserver) -> None:
        self._observers.register(observer)

    def unregister_observer(self, observer: LayoutObserver) -> None:
        self._observers.unregister(observer)

    # =================================================================
    # Parameter access
    # =================================================================

    def get_param_value(self, param_number: int) -> int:
        """
        Read one parameter from the device.

        Queries are serialized, so a response always belongs to the query
        that is waiting. A response arriving after the timeout finds no
        listener and is dropped.

        Raises:
            ParameterTimeoutError: No response within param_timeout
            TransportUnavailableError: The query could not be sent
        """
        with self._query_lock:
            response = threading.Event()
            values: list[int] = []

            def on_event(event: MidiEvent) -> None:
                if (
                    isinstance(event, ParameterResponse)
                    and event.control == nrpn.RESPONSE_CONTROL
                    and not response.is_set()
                ):
                    values.append(event.value)
                    response.set()

            self._transport.add_listener(on_event)
            try:
                self._send(nrpn.build_query(param_number, self.channel))
                if not self._clock.wait(response, self.param_timeout):
                    raise ParameterTimeoutError(param_number, self.param_timeout)
                logger.debug(f"NRPN {param_number} = {values[0]}")
                return values[0]
            finally:
                self._transport.remove_listener(on_event)

    def set_param_value(self, param_number: int, value: int) -> None:
        """
        Write one parameter to the device.

        Raises:
            TransportUnavailableError: The write could not be sent
        """
        self._send(nrpn.build_write(param_number, value, self.channel))
        logger.debug(f"NRPN {param_number} <- {value}")

    def set_operating_mode(self, mode: OperatingMode) -> None:
        """Switch the device between normal and config mode."""
        self.set_param_value(nrpn.OPERATING_MODE, mode.value)
        logger.info(f"Instrument operating mode set to {mode.name.lower()}")

    def _send(self, messages: list[mido.Message]) -> None:
        for message in messages:
            if not self._transport.send(message):
                raise TransportUnavailableError(None, "output")

    # =================================================================
    # Layout refresh
    # =================================================================

    def fetch_layout(self) -> LayoutState:
        """
        Query all layout parameters and derive the resulting layout.

        Nothing is applied; any failed query aborts the whole fetch.
        """
        octave = self.get_param_value(nrpn.SPLIT_LEFT_OCTAVE)
        transpose = self.get_param_value(nrpn.SPLIT_LEFT_TRANSPOSE)
        row_offset = self.get_param_value(nrpn.ROW_OFFSET)
        tempo = self.get_param_value(nrpn.TEMPO)
        return derive_layout(octave, transpose, row_offset, tempo, self.layout)

    def sync_state(self) -> bool:
        """
        Refresh the layout from the device.

        Returns immediately when called before the debounce interval has
        passed or while another refresh is running.

        Returns:
            True if the layout changed and observers were notified
        """
        if self._clock.now() < self._next_sync_at:
            return False
        if not self._sync_lock.acquire(blocking=False):
            logger.debug("Layout sync already in flight, skipping")
            return False

        try:
            self._next_sync_at = self._clock.now() + self.min_interval
            try:
                layout = self.fetch_layout()
            except DeviceError as e:
                self._on_sync_failed(e)
                return False
            except Exception:
                self._next_sync_at = self._clock.now() + self.failure_penalty
                raise

            if self._failure_warned:
                logger.info("Layout sync with instrument restored")
                self._failure_warned = False
            return self._apply(layout)
        finally:
            self._sync_lock.release()

    def _on_sync_failed(self, error: DeviceError) -> None:
        self._next_sync_at = self._clock.now() + self.failure_penalty
        if not self._failure_warned:
            logger.warning(
                f"Could not sync layout with instrument: {error.technical_message}. "
                f"Retrying every {self.failure_penalty:.0f}ms"
            )
            self._failure_warned = True
        else:
            logger.debug(f"Layout sync failed again: {error.technical_message}")

    def _apply(self, layout: LayoutState) -> bool:
        current = self.layout
        if layout.same_layout(current):
            if layout.bpm != current.bpm:
                logger.debug(f"Instrument tempo changed to {layout.bpm} BPM")
                self._state = (layout, self._state[1])
            return False

        grid = GridMap(layout)
        self._state = (layout, grid)
        logger.info(
            f"Instrument layout changed: start note {layout.start_note_number}, "
            f"row interval {layout.row_interval}"
        )
        self._observers.notify("on_layout_changed", layout, grid)
        return True

    # =================================================================
    # Polling
    # =================================================================

    def start_polling(self, interval: Optional[float] = None) -> ScheduledTask:
        """Refresh every `interval` ms (defaults to min_interval)."""
        if self.is_polling:
            return self._poll_task

        @handle_errors(operation_name="sync layout", re_raise=False, log_level=logging.WARNING)
        def poll_tick() -> None:
            self.sync_state()

        self._poll_task = self._clock.call_repeating(interval or self.min_interval, poll_tick)
        logger.debug("Layout polling started")
        return self._poll_task

    def stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
            logger.debug("Layout polling stopped")
