"""
NRPN message builder for the LinnStrument.

NRPN: Reading and Writing Device Settings
=========================================

The LinnStrument exposes its settings as numbered NRPN parameters. Both the
parameter number and its value are 14-bit numbers, split into two 7-bit
bytes and sent as a sequence of control changes::

    CC 99  parameter MSB     (number >> 7)
    CC 98  parameter LSB     (number & 0x7F)
    CC 6   value MSB
    CC 38  value LSB

Writing a Parameter
-------------------

A write is the four controllers above with the target parameter and the new
value, for example switching the operating mode (245) to config mode::

    CC99=1  CC98=117  CC6=0  CC38=1

Querying a Parameter
--------------------

There is no dedicated query message. Instead the special parameter 299
("request value of NRPN") is written, with the parameter to read as its
value::

    build_query(36):
      CC99=2  CC98=43   ->  parameter 299
      CC6=0   CC38=36   ->  value 36 (split left octave)

The device answers with an NRPN message of its own. Only its data entry LSB
(CC 38) matters: its value byte is the current value of the queried
parameter (always 0-127 for the parameters read here).

References
----------

- LinnStrument MIDI NRPN list (Roger Linn Design)
"""

from collections.abc import Sequence

import mido

from lightguide.midi.messages import DATA_ENTRY_LSB, DATA_ENTRY_MSB, NRPN_PARAM_LSB, NRPN_PARAM_MSB

# Parameters
SPLIT_LEFT_OCTAVE = 36
SPLIT_LEFT_TRANSPOSE = 37
ROW_OFFSET = 227
TEMPO = 238
OPERATING_MODE = 245
REQUEST_VALUE = 299

# Response sentinel: first data byte of the message carrying the value
RESPONSE_CONTROL = DATA_ENTRY_LSB

MAX_14BIT = (1 << 14) - 1


def split_14bit(value: int) -> tuple[int, int]:
    """
    Split a 14-bit number into (MSB, LSB) 7-bit bytes.

    Raises:
        ValueError: If value is outside 0-16383
    """
    if not 0 <= value <= MAX_14BIT:
        raise ValueError(f"Value {value} out of 14-bit range 0-{MAX_14BIT}")
    return value >> 7, value & 0x7F


def join_14bit(msb: int, lsb: int) -> int:
    """Inverse of split_14bit."""
    return (msb << 7) | lsb


def _nrpn(param_number: int, value: int, channel: int) -> list[mido.Message]:
    param_msb, param_lsb = split_14bit(param_number)
    value_msb, value_lsb = split_14bit(value)
    pairs: Sequence[tuple[int, int]] = (
        (NRPN_PARAM_MSB, param_msb),
        (NRPN_PARAM_LSB, param_lsb),
        (DATA_ENTRY_MSB, value_msb),
        (DATA_ENTRY_LSB, value_lsb),
    )
    return [
        mido.Message("control_change", channel=channel, control=control, value=data)
        for control, data in pairs
    ]


def build_query(param_number: int, channel: int = 0) -> list[mido.Message]:
    """Messages asking the device to report the value of `param_number`."""
    return _nrpn(REQUEST_VALUE, param_number, channel)


def build_write(param_number: int, value: int, channel: int = 0) -> list[mido.Message]:
    """Messages setting `param_number` to `value`."""
    return _nrpn(param_number, value, channel)
