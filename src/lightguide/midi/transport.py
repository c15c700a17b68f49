"""Instrument transport: decoded input events and raw output for one device."""

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Optional, Protocol, runtime_checkable

import mido

from .base_manager import name_filter
from .input_manager import MidiInputManager
from .messages import MidiEvent, decode_message
from .output_manager import MidiOutputManager

logger = logging.getLogger(__name__)

EventListener = Callable[[MidiEvent], None]


@runtime_checkable
class DeviceTransport(Protocol):
    """What the layout sync and the highlighter need from a device connection."""

    def send(self, message: mido.Message) -> bool:
        """Send a message; returns False if it could not be delivered."""
        ...

    def add_listener(self, listener: EventListener) -> None:
        """Receive every decoded incoming event."""
        ...

    def remove_listener(self, listener: EventListener) -> None:
        ...

    def start(self) -> None:
        """Open the ports."""
        ...

    def stop(self) -> None:
        """Close the ports."""
        ...


class InstrumentTransport:
    """
    Input and output of the instrument plus optional forward outputs.

    Incoming messages are forwarded unchanged to the forward outputs, then
    decoded and handed to every listener. Listeners run in mido's I/O
    thread and must return quickly.
    """

    def __init__(
        self,
        input_port: Optional[str],
        output_port: Optional[str],
        poll_interval: float = 2.0,
        forward_ports: Sequence[str] = (),
    ):
        """
        Args:
            input_port: Name (or part of it) of the instrument's input port
            output_port: Name (or part of it) of the instrument's output port
            poll_interval: Hot-plug poll interval (seconds)
            forward_ports: Outputs that receive a copy of all instrument input
        """
        self._input = MidiInputManager(name_filter(input_port), poll_interval, label="instrument")
        self._output = MidiOutputManager(
            name_filter(output_port), poll_interval, label="instrument"
        )
        self._forwards = [
            MidiOutputManager(name_filter(port), poll_interval, label=f"forward {i}")
            for i, port in enumerate(forward_ports, start=1)
            if port
        ]
        self.input_port_name = input_port
        self.output_port_name = output_port

        self._listeners: list[EventListener] = []
        self._listeners_lock = threading.Lock()
        self._input.on_message(self._on_message)

    def add_listener(self, listener: EventListener) -> None:
        with self._listeners_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        with self._listeners_lock:
            return len(self._listeners)

    def send(self, message: mido.Message) -> bool:
        return self._output.send(message)

    def start(self) -> None:
        self._input.start()
        self._output.start()
        for forward in self._forwards:
            forward.start()
        logger.debug("InstrumentTransport started")

    def stop(self) -> None:
        self._input.stop()
        self._output.stop()
        for forward in self._forwards:
            forward.stop()
        logger.debug("InstrumentTransport stopped")

    @property
    def input_connected(self) -> bool:
        return self._input.is_connected

    @property
    def output_connected(self) -> bool:
        return self._output.is_connected

    @property
    def forward_status(self) -> list[tuple[str, Optional[str]]]:
        """(label, connected port name or None) per forward output."""
        return [(forward.description, forward.current_port) for forward in self._forwards]

    def _on_message(self, msg: mido.Message) -> None:
        for forward in self._forwards:
            forward.send(msg)

        event = decode_message(msg)
        if event is None:
            return

        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Error in instrument event listener {listener}: {e}", exc_info=True)

    @staticmethod
    def list_ports() -> dict[str, list[str]]:
        """
        List all available MIDI ports.

        Returns:
            Dictionary with 'input' and 'output' lists of port names
        """
        return {
            "input": mido.get_input_names(),
            "output": mido.get_output_names(),
        }

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
