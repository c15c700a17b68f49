"""CLI commands for lightguide."""

from .config import config_group
from .device import device_group
from .grid import grid
from .midi import midi_group

__all__ = ["config_group", "device_group", "grid", "midi_group"]
