"""MIDI I/O: hot-plug port managers and the decoded event boundary."""

from .base_manager import BaseMidiManager, name_filter
from .input_manager import MidiInputManager
from .messages import (
    ControlChange,
    MidiEvent,
    NoteOff,
    NoteOn,
    ParameterResponse,
    decode_message,
)
from .output_manager import MidiOutputManager
from .transport import DeviceTransport, InstrumentTransport

__all__ = [
    "BaseMidiManager",
    "name_filter",
    "MidiInputManager",
    "MidiOutputManager",
    "DeviceTransport",
    "InstrumentTransport",
    "MidiEvent",
    "NoteOn",
    "NoteOff",
    "ControlChange",
    "ParameterResponse",
    "decode_message",
]
