"""Tests for the LinnStrument layout sync."""

import logging
import time
from unittest.mock import Mock

import pytest

from lightguide.core import SystemClock
from lightguide.devices.linnstrument import DeviceStateSync, derive_layout, nrpn
from lightguide.exceptions import ParameterTimeoutError, TransportUnavailableError
from lightguide.midi import ParameterResponse
from lightguide.models import LayoutState, OperatingMode
from lightguide.protocols import LayoutObserver


@pytest.fixture
def sync(instrument, clock):
    return DeviceStateSync(
        instrument,
        clock,
        LayoutState(),
        param_timeout=300,
        min_interval=200,
        failure_penalty=3000,
    )


@pytest.mark.unit
class TestDeriveLayout:
    """Test the raw parameter -> layout formulas."""

    def test_default_values(self):
        layout = derive_layout(5, 7, 5, 120, LayoutState())
        assert layout.start_note_number == 30
        assert layout.row_interval == 5
        assert layout.bpm == 120

    def test_octave_and_transpose(self):
        assert derive_layout(6, 7, 5, None, LayoutState()).start_note_number == 42
        assert derive_layout(4, 9, 5, None, LayoutState()).start_note_number == 20

    def test_row_offset_zero_means_no_overlap(self):
        assert derive_layout(5, 7, 0, None, LayoutState()).row_interval == 16
        assert derive_layout(5, 7, 0, None, LayoutState(device_width=200)).row_interval == 25

    def test_geometry_kept(self):
        current = LayoutState(device_width=200, column_interval=2)
        layout = derive_layout(5, 7, 5, None, current)
        assert layout.device_width == 200
        assert layout.column_interval == 2


@pytest.mark.unit
class TestGetParamValue:
    """Test the NRPN request/response exchange."""

    def test_returns_value(self, sync, instrument):
        assert sync.get_param_value(nrpn.TEMPO) == 120
        assert instrument.queries == [nrpn.TEMPO]

    def test_ignores_other_nrpn_controllers(self, sync, instrument):
        """The CC99/CC6 parts of the response must not be taken as the value."""
        instrument.params[nrpn.SPLIT_LEFT_OCTAVE] = 3
        assert sync.get_param_value(nrpn.SPLIT_LEFT_OCTAVE) == 3

    def test_timeout(self, sync, instrument, clock):
        instrument.respond = False

        with pytest.raises(ParameterTimeoutError) as exc_info:
            sync.get_param_value(nrpn.TEMPO)

        assert exc_info.value.param_number == nrpn.TEMPO
        assert clock.now() == 300

    def test_no_listener_left_after_timeout(self, sync, instrument):
        instrument.respond = False
        with pytest.raises(ParameterTimeoutError):
            sync.get_param_value(nrpn.TEMPO)

        assert instrument.listeners == []

        # A late answer has nobody to reach and does not affect the next query
        instrument.emit(ParameterResponse(0, nrpn.RESPONSE_CONTROL, 99))
        instrument.respond = True
        assert sync.get_param_value(nrpn.TEMPO) == 120

    def test_no_listener_left_after_success(self, sync, instrument):
        sync.get_param_value(nrpn.TEMPO)
        assert instrument.listeners == []

    def test_output_unavailable(self, sync, instrument):
        instrument.connected = False
        with pytest.raises(TransportUnavailableError):
            sync.get_param_value(nrpn.TEMPO)
        assert instrument.listeners == []

    def test_real_clock_timeout_is_bounded(self, instrument):
        instrument.respond = False
        sync = DeviceStateSync(instrument, SystemClock(), LayoutState(), param_timeout=50)

        started = time.monotonic()
        with pytest.raises(ParameterTimeoutError):
            sync.get_param_value(nrpn.TEMPO)
        elapsed_ms = (time.monotonic() - started) * 1000

        assert 40 <= elapsed_ms < 250


@pytest.mark.unit
class TestSetParamValue:
    """Test NRPN writes."""

    def test_write(self, sync, instrument):
        sync.set_param_value(nrpn.TEMPO, 90)
        assert instrument.params[nrpn.TEMPO] == 90

    def test_operating_mode(self, sync, instrument):
        sync.set_operating_mode(OperatingMode.CONFIG)
        assert instrument.params[nrpn.OPERATING_MODE] == 1
        sync.set_operating_mode(OperatingMode.NORMAL)
        assert instrument.params[nrpn.OPERATING_MODE] == 0


@pytest.mark.unit
class TestSyncState:
    """Test refresh, change detection, debounce and backoff."""

    def test_fetches_all_parameters_in_order(self, sync, instrument):
        sync.sync_state()
        assert instrument.queries == [
            nrpn.SPLIT_LEFT_OCTAVE,
            nrpn.SPLIT_LEFT_TRANSPOSE,
            nrpn.ROW_OFFSET,
            nrpn.TEMPO,
        ]

    def test_unchanged_layout_not_published(self, sync):
        observer = Mock(spec=LayoutObserver)
        sync.register_observer(observer)
        grid = sync.grid

        assert sync.sync_state() is False

        observer.on_layout_changed.assert_not_called()
        assert sync.grid is grid
        assert sync.layout.bpm == 120

    def test_changed_layout_published(self, sync, instrument, clock):
        observer = Mock(spec=LayoutObserver)
        sync.register_observer(observer)
        instrument.params[nrpn.SPLIT_LEFT_TRANSPOSE] = 9

        assert sync.sync_state() is True

        assert sync.layout.start_note_number == 32
        assert sync.grid.layout is sync.layout
        assert sync.grid.coordinates(32) == ((0, 0),)
        observer.on_layout_changed.assert_called_once_with(sync.layout, sync.grid)

    def test_debounced(self, sync, instrument, clock):
        sync.sync_state()
        clock.advance(100)

        assert sync.sync_state() is False
        assert len(instrument.queries) == 4

        clock.advance(100)
        sync.sync_state()
        assert len(instrument.queries) == 8

    def test_refresh_while_in_flight_is_dropped(self, instrument, clock):
        sync = DeviceStateSync(instrument, clock, LayoutState(), min_interval=0)
        nested = []

        def refresh_again(param):
            if param == nrpn.SPLIT_LEFT_OCTAVE:
                nested.append(sync.sync_state())

        instrument.on_query = refresh_again
        instrument.params[nrpn.ROW_OFFSET] = 7

        assert sync.sync_state() is True
        assert nested == [False]
        assert len(instrument.queries) == 4
        assert len(instrument.sent) == 16

    def test_failure_applies_nothing(self, sync, instrument):
        instrument.params[nrpn.SPLIT_LEFT_TRANSPOSE] = 9
        instrument.silent_params.add(nrpn.TEMPO)

        assert sync.sync_state() is False
        assert sync.layout.start_note_number == 30

    def test_failure_penalty(self, sync, instrument, clock):
        instrument.respond = False
        sync.sync_state()
        assert clock.now() == 300
        instrument.respond = True
        queries = len(instrument.queries)

        clock.advance(2999)
        sync.sync_state()
        assert len(instrument.queries) == queries

        clock.advance(1)
        sync.sync_state()
        assert len(instrument.queries) == queries + 4

    def test_failure_warned_once(self, sync, instrument, clock, caplog):
        instrument.respond = False
        with caplog.at_level(logging.WARNING, logger="lightguide.devices.linnstrument.sync"):
            sync.sync_state()
            clock.advance(3000)
            sync.sync_state()

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1


@pytest.mark.unit
class TestPolling:
    """Test periodic refresh on the clock."""

    def test_polls_on_interval(self, sync, instrument, clock):
        sync.start_polling(200)
        assert sync.is_polling

        clock.advance(200)
        assert len(instrument.queries) == 4
        clock.advance(200)
        assert len(instrument.queries) == 8

        sync.stop_polling()
        clock.advance(1000)
        assert len(instrument.queries) == 8
        assert not sync.is_polling

    def test_polling_survives_unexpected_errors(self, sync, instrument, clock):
        sync.start_polling(200)
        sync.fetch_layout = Mock(side_effect=RuntimeError("boom"))

        clock.advance(200)
        clock.advance(3200)

        assert sync.fetch_layout.call_count == 2
        assert sync.is_polling
