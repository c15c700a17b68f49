"""MIDI input manager with hot-plug support."""

import logging
from collections.abc import Callable

import mido

from .base_manager import BaseMidiManager

logger = logging.getLogger(__name__)


class MidiInputManager(BaseMidiManager[mido.ports.BaseInput]):
    """Opens a matching MIDI input and hands every message to a callback."""

    def __init__(
        self,
        device_filter: Callable[[str], bool],
        poll_interval: float = 2.0,
        label: str = "",
    ):
        super().__init__(device_filter, poll_interval, label)
        self._message_callback: Callable[[mido.Message], None] | None = None

    def on_message(self, callback: Callable[[mido.Message], None]) -> None:
        """
        Register callback for incoming MIDI messages.

        Callback is executed in mido's internal I/O thread - keep it fast!
        """
        self._message_callback = callback

    def _get_available_ports(self) -> list[str]:
        return mido.get_input_names()

    def _open_port(self, port_name: str) -> mido.ports.BaseInput:
        return mido.open_input(port_name, callback=self._midi_callback)

    def _get_port_type_name(self) -> str:
        return "input"

    def _midi_callback(self, msg: mido.Message) -> None:
        """Called from mido's I/O thread."""
        if msg.type == "clock":
            return
        try:
            if self._message_callback:
                self._message_callback(msg)
        except Exception as e:
            logger.error(f"Error in MIDI {self.description} callback: {e}", exc_info=True)
