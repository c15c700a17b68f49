"""Note layout of the instrument's pad grid.

The grid is a linear layout: the pad at column x, row y plays

    start_note_number + x * column_interval + y * row_interval

With a row interval smaller than the number of columns the rows overlap,
so one note can sit on several pads. ``build_index`` inverts the grid into
note -> pads. Pads whose computed value falls outside 0-127 still exist on
the device but play nothing; they are left out of the index and render as
INVALID_LABEL.

Coordinates are (x, y) with x the column (0 = leftmost playing column) and
y the row (0 = bottom row).
"""

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from lightguide.models import LayoutState, note_identifier
from lightguide.models.layout import ROWS

logger = logging.getLogger(__name__)

MIN_NOTE = 0
MAX_NOTE = 127
INVALID_LABEL = "--"

Coordinate = tuple[int, int]
Grid = tuple[tuple[int, ...], ...]
GridIndex = Mapping[int, tuple[Coordinate, ...]]


def is_valid_note(value: int) -> bool:
    """True if value is a playable MIDI note number."""
    return MIN_NOTE <= value <= MAX_NOTE


def compute_grid(
    start_note_number: int,
    row_interval: int,
    column_interval: int,
    width: int,
) -> Grid:
    """
    Compute the note value of every pad.

    Args:
        start_note_number: Note of the bottom-left pad
        row_interval: Half steps between adjacent rows
        column_interval: Half steps between adjacent columns
        width: Device size; the grid has width // 8 columns and 8 rows

    Returns:
        grid[x][y] for x in range(width // 8), y in range(8). Values may lie
        outside 0-127.
    """
    columns = width // ROWS
    return tuple(
        tuple(start_note_number + x * column_interval + y * row_interval for y in range(ROWS))
        for x in range(columns)
    )


def build_index(grid: Grid, start_note_number: int) -> GridIndex:
    """
    Map every valid note >= start_note_number to all pads that play it.

    Notes that do not appear on the grid map to an empty tuple. Coordinates
    are ordered by column, then row.
    """
    positions: dict[int, list[Coordinate]] = {}
    for x, column in enumerate(grid):
        for y, value in enumerate(column):
            if is_valid_note(value):
                positions.setdefault(value, []).append((x, y))

    index = {
        note: tuple(positions.get(note, ()))
        for note in range(max(start_note_number, MIN_NOTE), MAX_NOTE + 1)
    }
    return MappingProxyType(index)


class GridMap:
    """
    Immutable grid plus its reverse index for one LayoutState.

    A GridMap is never modified after construction. When the layout changes
    a new GridMap is built and swapped in, so readers always see a complete
    grid.
    """

    __slots__ = ("layout", "grid", "index")

    def __init__(self, layout: LayoutState):
        self.layout = layout
        self.grid = compute_grid(
            layout.start_note_number,
            layout.row_interval,
            layout.column_interval,
            layout.device_width,
        )
        self.index = build_index(self.grid, layout.start_note_number)
        logger.debug(
            f"Generated grid with start note={layout.start_note_number} "
            f"row interval={layout.row_interval} columns={len(self.grid)}"
        )

    @property
    def columns(self) -> int:
        return len(self.grid)

    @property
    def rows(self) -> int:
        return ROWS

    def coordinates(self, note_number: int) -> tuple[Coordinate, ...]:
        """All pads playing note_number; empty if the note is not on the grid."""
        return self.index.get(note_number, ())

    def value_at(self, x: int, y: int) -> int:
        """Raw computed value of a pad, which may be an invalid note."""
        if not (0 <= x < self.columns and 0 <= y < ROWS):
            raise IndexError(f"Invalid coordinates: ({x}, {y})")
        return self.grid[x][y]

    def note_at(self, x: int, y: int) -> int | None:
        """Note played by a pad, or None if the pad has no valid note."""
        value = self.value_at(x, y)
        return value if is_valid_note(value) else None

    def cell_label(self, x: int, y: int) -> str:
        """Note name of a pad, or INVALID_LABEL for pads outside the MIDI range."""
        note = self.note_at(x, y)
        return INVALID_LABEL if note is None else note_identifier(note)

    def cells(self) -> Iterator[tuple[int, int, int | None]]:
        """Iterate (x, y, note) over every pad; note is None for invalid pads."""
        for x in range(self.columns):
            for y in range(ROWS):
                yield x, y, self.note_at(x, y)

    def render(self) -> str:
        """Text rendering, top row first, as the pads appear on the device."""
        lines = []
        for y in reversed(range(ROWS)):
            lines.append(" ".join(f"{self.cell_label(x, y):>4}" for x in range(self.columns)))
        return "\n".join(lines)
