"""Typed MIDI events decoded at the transport boundary.

Core components never see raw mido messages: every incoming message is
decoded once into one of the variants below, or dropped.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import mido

logger = logging.getLogger(__name__)

# Controllers that make up an NRPN exchange
NRPN_PARAM_MSB = 99
NRPN_PARAM_LSB = 98
DATA_ENTRY_MSB = 6
DATA_ENTRY_LSB = 38
NRPN_RESET_MSB = 101
NRPN_RESET_LSB = 100

NRPN_CONTROLS = frozenset(
    {NRPN_PARAM_MSB, NRPN_PARAM_LSB, DATA_ENTRY_MSB, DATA_ENTRY_LSB, NRPN_RESET_MSB, NRPN_RESET_LSB}
)


@dataclass(frozen=True)
class NoteOn:
    channel: int
    note: int
    velocity: int


@dataclass(frozen=True)
class NoteOff:
    channel: int
    note: int


@dataclass(frozen=True)
class ControlChange:
    channel: int
    control: int
    value: int


@dataclass(frozen=True)
class ParameterResponse:
    """
    One controller of a parameter (NRPN) message sent by the device.

    ``control`` is the first data byte; a parameter value arrives with
    control 38 (data entry LSB) and the value in ``value``.
    """

    channel: int
    control: int
    value: int


MidiEvent = Union[NoteOn, NoteOff, ControlChange, ParameterResponse]


def decode_message(
    msg: mido.Message, pressure_note_offset: Optional[int] = None
) -> Optional[MidiEvent]:
    """
    Decode a mido message into a MidiEvent.

    Args:
        msg: Incoming message
        pressure_note_offset: If set, poly aftertouch is read as note
            on/off for note ``msg.note + pressure_note_offset``: non-zero
            pressure starts the note, zero ends it

    Returns:
        The decoded event, or None for message types the core ignores
    """
    if msg.type == "note_on":
        # Note on with velocity 0 is a note off
        if msg.velocity > 0:
            return NoteOn(msg.channel, msg.note, msg.velocity)
        return NoteOff(msg.channel, msg.note)

    if msg.type == "note_off":
        return NoteOff(msg.channel, msg.note)

    if msg.type == "control_change":
        if msg.control in NRPN_CONTROLS:
            return ParameterResponse(msg.channel, msg.control, msg.value)
        return ControlChange(msg.channel, msg.control, msg.value)

    if msg.type == "polytouch" and pressure_note_offset is not None:
        note = msg.note + pressure_note_offset
        if not 0 <= note <= 127:
            logger.debug(f"Ignoring pressure message outside the note range: {msg}")
            return None
        if msg.value > 0:
            return NoteOn(msg.channel, note, msg.value)
        return NoteOff(msg.channel, note)

    return None
