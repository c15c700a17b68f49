"""LinnStrument-specific device code."""

from .highlighter import PadHighlighter
from .sync import DeviceStateSync, derive_layout

__all__ = ["DeviceStateSync", "PadHighlighter", "derive_layout"]
