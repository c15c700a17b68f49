"""Instrument layout state."""

from pydantic import BaseModel, ConfigDict, Field

ROWS = 8


class LayoutState(BaseModel):
    """
    Note layout of the instrument's pad grid.

    ``start_note_number`` and ``row_interval`` together determine the note of
    every pad. Instances are immutable; a change produces a new LayoutState.
    """

    model_config = ConfigDict(frozen=True)

    start_note_number: int = Field(default=30, description="Note of the bottom-left pad")
    row_interval: int = Field(default=5, description="Half steps between adjacent rows")
    column_interval: int = Field(default=1, description="Half steps between adjacent columns")
    device_width: int = Field(default=128, ge=8, description="Device size (128 or 200)")
    bpm: int | None = Field(default=None, description="Tempo reported by the device")

    @property
    def columns(self) -> int:
        """Number of pad columns (device width / 8)."""
        return self.device_width // ROWS

    def same_layout(self, other: "LayoutState") -> bool:
        """True if both states put every note on the same pads."""
        return (
            self.start_note_number == other.start_note_number
            and self.row_interval == other.row_interval
            and self.column_interval == other.column_interval
            and self.device_width == other.device_width
        )
