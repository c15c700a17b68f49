"""MIDI output manager with hot-plug support."""

import logging

import mido

from .base_manager import BaseMidiManager

logger = logging.getLogger(__name__)


class MidiOutputManager(BaseMidiManager[mido.ports.BaseOutput]):
    """Opens a matching MIDI output and sends messages to it."""

    def send(self, message: mido.Message) -> bool:
        """
        Send a MIDI message.

        Returns:
            True if sent, False if not connected or the backend failed
        """
        with self._port_lock:
            if self._port:
                try:
                    self._port.send(message)
                    return True
                except Exception as e:
                    logger.error(f"Error sending MIDI message to {self.description}: {e}")
                    return False
            return False

    def _get_available_ports(self) -> list[str]:
        return mido.get_output_names()

    def _open_port(self, port_name: str) -> mido.ports.BaseOutput:
        return mido.open_output(port_name)

    def _get_port_type_name(self) -> str:
        return "output"
