"""Device and transport exceptions.

- DeviceError: Base class for instrument communication errors
- ParameterTimeoutError: A parameter query got no response in time
- TransportUnavailableError: A configured MIDI port could not be found or opened
"""

from typing import Optional

from .base import LightGuideError


class DeviceError(LightGuideError):
    """Communication with the instrument failed."""

    def __init__(
        self,
        user_message: str,
        technical_message: Optional[str] = None,
        recoverable: bool = True,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(
            user_message=user_message,
            technical_message=technical_message,
            recoverable=recoverable,
            recovery_hint=recovery_hint,
        )


class ParameterTimeoutError(DeviceError):
    """No parameter response arrived before the query timed out."""

    def __init__(self, param_number: int, timeout_ms: float):
        """
        Initialize parameter timeout error.

        Args:
            param_number: The NRPN parameter number that was queried
            timeout_ms: How long the query waited (milliseconds)
        """
        super().__init__(
            user_message=f"Instrument did not answer parameter {param_number} query",
            technical_message=(
                f"Timeout after {timeout_ms:.0f}ms waiting for NRPN {param_number} response"
            ),
            recovery_hint=(
                "Make sure the instrument is connected and that both its input and "
                "output ports are configured"
            ),
        )
        self.param_number = param_number
        self.timeout_ms = timeout_ms


class TransportUnavailableError(DeviceError):
    """A MIDI port required for an operation is not available."""

    def __init__(self, port_name: Optional[str], direction: str = "output"):
        """
        Initialize transport unavailable error.

        Args:
            port_name: Name of the port that was requested (None if not configured)
            direction: "input" or "output"
        """
        if port_name:
            user_msg = f"MIDI {direction} port not available: {port_name}"
        else:
            user_msg = f"No MIDI {direction} port configured"

        super().__init__(
            user_message=user_msg,
            technical_message=f"MIDI {direction} port {port_name!r} not connected",
            recovery_hint="Run 'lightguide midi list' to see available MIDI ports",
        )
        self.port_name = port_name
        self.direction = direction
