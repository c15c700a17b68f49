"""Note event models.

All timestamps are milliseconds taken from a monotonic clock, never wall-clock
time, so clock adjustments cannot reorder events.
"""

from pydantic import BaseModel, ConfigDict, Field

NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


def note_identifier(note_number: int) -> str:
    """
    Human-readable name of a MIDI note number.

    Middle C (60) is "C4", so note 0 is "C-1".
    """
    octave = note_number // 12 - 1
    return f"{NOTE_NAMES[note_number % 12]}{octave}"


class PlayedNoteEvent(BaseModel):
    """A note-on played by the performer."""

    model_config = ConfigDict(frozen=True)

    timestamp: float = Field(description="Monotonic time of the note-on (ms)")
    note_number: int = Field(ge=0, le=127)


class GuideNoteOnset(BaseModel):
    """A guide note that should be played now."""

    model_config = ConfigDict(frozen=True)

    note_number: int = Field(ge=0, le=127)
    onset_time: float = Field(description="Monotonic time of the guide note-on (ms)")


class TimingResult(BaseModel):
    """
    How precisely a guide note was matched by a played note.

    ``timing_offset`` is negative when the note was played early, positive
    when late, and None when no matching note was found at all. Zero is a
    perfect match, not a missing value.
    """

    model_config = ConfigDict(frozen=True)

    note_number: int = Field(ge=0, le=127)
    note_identifier: str
    observed_time: float = Field(description="Monotonic time of the guide onset (ms)")
    timing_offset: float | None = Field(
        default=None, description="Played time minus guide time (ms), None if unresolved"
    )

    @property
    def is_resolved(self) -> bool:
        """True if a played note was matched to the guide note."""
        return self.timing_offset is not None

    @classmethod
    def for_onset(cls, onset: GuideNoteOnset, timing_offset: float | None) -> "TimingResult":
        """Create the result for a guide onset."""
        return cls(
            note_number=onset.note_number,
            note_identifier=note_identifier(onset.note_number),
            observed_time=onset.onset_time,
            timing_offset=timing_offset,
        )

    def format_offset(self) -> str:
        """Offset as shown in the log, e.g. "+40ms", "-12ms" or "MISSED"."""
        if self.timing_offset is None:
            return "MISSED"
        if self.timing_offset < 0:
            return f"{self.timing_offset:.0f}ms"
        return f"+{self.timing_offset:.0f}ms"
