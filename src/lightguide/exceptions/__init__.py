"""
Custom exception hierarchy for Light Guide.

## Exception Hierarchy

```
LightGuideError (base)
├── ConfigurationError
│   ├── ConfigFileInvalidError
│   └── ConfigValidationError
└── DeviceError
    ├── ParameterTimeoutError
    └── TransportUnavailableError
```

All custom exceptions inherit from `LightGuideError`, which provides
`user_message`, `technical_message`, `recoverable` and `recovery_hint`.

Device errors are recoverable by nature: a layout sync that times out is
logged and retried on the next polling tick, it never stops the application.
"""

from .base import LightGuideError
from .config import ConfigFileInvalidError, ConfigurationError, ConfigValidationError
from .device import DeviceError, ParameterTimeoutError, TransportUnavailableError
from .handlers import (
    ErrorContext,
    format_error_for_display,
    handle_errors,
    wrap_pydantic_error,
)

__all__ = [
    # Base
    "LightGuideError",
    # Config
    "ConfigurationError",
    "ConfigFileInvalidError",
    "ConfigValidationError",
    # Device
    "DeviceError",
    "ParameterTimeoutError",
    "TransportUnavailableError",
    # Handlers
    "ErrorContext",
    "format_error_for_display",
    "handle_errors",
    "wrap_pydantic_error",
]
