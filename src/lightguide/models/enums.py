"""Enumerations for the light guide."""

from enum import Enum


class TimingCategory(str, Enum):
    """How a guide note was played."""

    IN_TIME = "in_time"  # |offset| <= delayed threshold
    EARLY = "early"  # offset < 0, beyond delayed threshold
    LATE = "late"  # offset > 0, beyond delayed threshold
    MISSED = "missed"  # no match, or |offset| > missed threshold


class OperatingMode(int, Enum):
    """Instrument operating mode (NRPN 245)."""

    NORMAL = 0
    CONFIG = 1
