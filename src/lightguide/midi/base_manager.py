"""Base MIDI port manager with hot-plug support."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Generic, Optional, TypeVar

import mido

logger = logging.getLogger(__name__)

PortType = TypeVar("PortType", bound=mido.ports.BasePort)


def name_filter(pattern: Optional[str]) -> Callable[[str], bool]:
    """
    Port filter matching names that contain `pattern` (case-insensitive).

    An empty or missing pattern matches no port.
    """
    if not pattern:
        return lambda port_name: False
    needle = pattern.casefold()
    return lambda port_name: needle in port_name.casefold()


class BaseMidiManager(ABC, Generic[PortType]):
    """
    Keeps one MIDI port open for a device selected by name.

    A daemon thread polls the available ports, connects when a matching port
    appears and drops the connection when it disappears. The "no device"
    warning is logged once per disconnection, not on every poll.
    """

    def __init__(
        self,
        device_filter: Callable[[str], bool],
        poll_interval: float = 2.0,
        label: str = "",
    ):
        """
        Args:
            device_filter: Returns True if a port name belongs to the device
            poll_interval: How often to check for device changes (seconds)
            label: Role of the port for log messages (e.g. "guide")
        """
        self._device_filter = device_filter
        self._poll_interval = poll_interval
        self._label = label
        self._running = False
        self._monitor_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._port: Optional[PortType] = None
        self._port_lock = threading.Lock()
        self._no_device_warned = False
        self._on_connection_changed: Optional[Callable[[bool, Optional[str]], None]] = None

    @abstractmethod
    def _get_available_ports(self) -> list[str]:
        """Names of the ports of this direction."""

    @abstractmethod
    def _open_port(self, port_name: str) -> PortType:
        """Open the named port; may raise if the backend refuses."""

    @abstractmethod
    def _get_port_type_name(self) -> str:
        """Port direction for log messages ("input" or "output")."""

    @property
    def description(self) -> str:
        port_type = self._get_port_type_name()
        return f"{self._label} {port_type}" if self._label else port_type

    def start(self) -> None:
        """Connect if the device is present and start monitoring for changes."""
        if self._running:
            logger.warning(f"MIDI {self.description} manager is already running")
            return

        self._running = True
        self._stop_event.clear()
        self.connect()
        self._monitor_thread = threading.Thread(
            target=self._monitor_devices, name=f"midi-{self._get_port_type_name()}", daemon=True
        )
        self._monitor_thread.start()
        logger.debug(f"MIDI {self.description} manager started")

    def stop(self) -> None:
        """Stop monitoring and close the port."""
        self._running = False
        self._stop_event.set()

        with self._port_lock:
            if self._port:
                try:
                    self._port.close()
                except Exception as e:
                    logger.error(f"Error closing MIDI {self.description} port: {e}")
                self._port = None

        if self._monitor_thread and self._monitor_thread.is_alive():
            self._monitor_thread.join(timeout=1.0)

        logger.debug(f"MIDI {self.description} manager stopped")

    def connect(self) -> bool:
        """
        Connect now if a matching port is available.

        Returns:
            True if a port is open after the call
        """
        with self._port_lock:
            if self._port is None:
                port_name = self._find_matching_port()
                if port_name:
                    self._connect_to_port(port_name)
                elif not self._no_device_warned:
                    logger.warning(f"No matching MIDI {self.description} device found")
                    self._no_device_warned = True
            return self._port is not None

    def on_connection_changed(self, callback: Callable[[bool, Optional[str]], None]) -> None:
        """
        Register callback for connection state changes.

        Args:
            callback: Receives (is_connected, port_name)
        """
        self._on_connection_changed = callback

    def _find_matching_port(self) -> Optional[str]:
        matching_ports = [p for p in self._get_available_ports() if self._device_filter(p)]
        return matching_ports[0] if matching_ports else None

    def _monitor_devices(self) -> None:
        """Poll for device connection/disconnection."""
        logger.debug(f"Starting MIDI {self.description} device monitoring")

        while not self._stop_event.wait(self._poll_interval):
            try:
                available_ports = set(self._get_available_ports())

                with self._port_lock:
                    if self._port and self._port.name not in available_ports:
                        port_name = self._port.name
                        logger.warning(f"MIDI {self.description} disconnected: {port_name}")
                        try:
                            self._port.close()
                        except Exception as e:
                            logger.debug(f"Error closing vanished port {port_name}: {e}")
                        self._port = None
                        self._no_device_warned = False
                        self._fire_connection_changed(False, None)

                self.connect()

            except Exception as e:
                logger.error(f"Error in MIDI {self.description} monitoring: {e}")

    def _connect_to_port(self, port_name: str) -> None:
        """
        Open a port.

        Note: Must be called with _port_lock held.
        """
        try:
            self._port = self._open_port(port_name)
            self._no_device_warned = False
            logger.info(f"Connected to MIDI {self.description}: {port_name}")
            self._fire_connection_changed(True, port_name)
        except Exception as e:
            logger.error(f"Failed to connect to {port_name}: {e}")
            self._port = None

    def _fire_connection_changed(self, connected: bool, port_name: Optional[str]) -> None:
        # Runs in its own thread since the caller holds _port_lock
        callback = self._on_connection_changed
        if callback is None:
            return

        def fire_callback():
            try:
                callback(connected, port_name)
            except Exception as e:
                logger.error(f"Error in connection callback: {e}")

        threading.Thread(target=fire_callback, daemon=True).start()

    @property
    def is_connected(self) -> bool:
        """True if a port is currently open."""
        with self._port_lock:
            return self._port is not None

    @property
    def current_port(self) -> Optional[str]:
        """Name of the open port, if any."""
        with self._port_lock:
            return self._port.name if self._port else None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
