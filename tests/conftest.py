"""Pytest fixtures for tests."""

from pathlib import Path
from tempfile import TemporaryDirectory

import mido
import pytest

from lightguide.core import NoteHistory, VirtualClock
from lightguide.devices.linnstrument import nrpn
from lightguide.midi import ParameterResponse
from lightguide.midi.messages import DATA_ENTRY_LSB, DATA_ENTRY_MSB, NRPN_PARAM_LSB, NRPN_PARAM_MSB


class FakeLinnStrument:
    """
    In-memory instrument implementing the DeviceTransport protocol.

    Answers NRPN value requests synchronously from ``params`` and applies
    NRPN writes to it. Every sent message is kept in ``sent``.
    """

    def __init__(self, params: dict[int, int] | None = None):
        self.params = {
            nrpn.SPLIT_LEFT_OCTAVE: 5,
            nrpn.SPLIT_LEFT_TRANSPOSE: 7,
            nrpn.ROW_OFFSET: 5,
            nrpn.TEMPO: 120,
        }
        if params:
            self.params.update(params)
        self.sent: list[mido.Message] = []
        self.listeners = []
        self.connected = True
        self.respond = True
        self.silent_params: set[int] = set()
        self.on_query = None
        self.queries: list[int] = []
        self.started = False
        self._nrpn: dict[int, int] = {}

    def send(self, message: mido.Message) -> bool:
        if not self.connected:
            return False
        self.sent.append(message)
        if message.type == "control_change":
            self._nrpn[message.control] = message.value
            if message.control == DATA_ENTRY_LSB:
                self._complete_nrpn(message.channel)
        return True

    def add_listener(self, listener) -> None:
        if listener not in self.listeners:
            self.listeners.append(listener)

    def remove_listener(self, listener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def emit(self, event) -> None:
        """Deliver a decoded event to all listeners."""
        for listener in list(self.listeners):
            listener(event)

    def _complete_nrpn(self, channel: int) -> None:
        param = nrpn.join_14bit(self._nrpn.get(NRPN_PARAM_MSB, 0), self._nrpn.get(NRPN_PARAM_LSB, 0))
        value = nrpn.join_14bit(self._nrpn.get(DATA_ENTRY_MSB, 0), self._nrpn[DATA_ENTRY_LSB])

        if param != nrpn.REQUEST_VALUE:
            self.params[param] = value
            return

        self.queries.append(value)
        if self.on_query is not None:
            self.on_query(value)
        if not self.respond or value in self.silent_params:
            return
        self.emit(ParameterResponse(channel, NRPN_PARAM_MSB, param >> 7))
        self.emit(ParameterResponse(channel, DATA_ENTRY_MSB, 0))
        self.emit(ParameterResponse(channel, DATA_ENTRY_LSB, self.params.get(value, 0)))


class FakeGuideInput:
    """Stands in for the guide MidiInputManager."""

    def __init__(self, connected: bool = True):
        self.is_connected = connected
        self.callback = None
        self.started = False

    def on_message(self, callback) -> None:
        self.callback = callback

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def receive(self, message: mido.Message) -> None:
        self.callback(message)


@pytest.fixture
def temp_dir():
    """Create a temporary directory that gets cleaned up."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock():
    """Virtual clock starting at t=0."""
    return VirtualClock()


@pytest.fixture
def history():
    return NoteHistory()


@pytest.fixture
def instrument():
    """Fake LinnStrument answering with the default layout."""
    return FakeLinnStrument()


@pytest.fixture
def guide_input():
    return FakeGuideInput()
