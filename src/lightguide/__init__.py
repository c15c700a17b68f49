"""Light Guide: real-time timing feedback for grid MIDI controllers."""

__version__ = "0.1.0"
