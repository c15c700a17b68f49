"""Unit tests for the grid layout and its reverse index."""

import pytest

from lightguide.core import INVALID_LABEL, GridMap, build_index, compute_grid
from lightguide.models import LayoutState


@pytest.mark.unit
class TestComputeGrid:
    """Test note values of the pad grid."""

    def test_dimensions(self):
        """A 128 has 16 columns, a 200 has 25, both 8 rows."""
        assert len(compute_grid(30, 5, 1, 128)) == 16
        assert len(compute_grid(30, 5, 1, 200)) == 25
        assert all(len(column) == 8 for column in compute_grid(30, 5, 1, 128))

    def test_cell_values(self):
        """Cell (x, y) = start + x * column interval + y * row interval."""
        grid = compute_grid(30, 5, 1, 128)
        assert grid[0][0] == 30
        assert grid[1][0] == 31
        assert grid[0][1] == 35
        assert grid[15][7] == 30 + 15 + 35

    def test_idempotent(self):
        """Identical arguments produce identical grids."""
        assert compute_grid(30, 5, 1, 128) == compute_grid(30, 5, 1, 128)

    def test_values_outside_midi_range_are_kept(self):
        """Out-of-range values stay in the grid, they are not clipped."""
        grid = compute_grid(120, 5, 1, 128)
        assert grid[15][7] == 120 + 15 + 35
        assert compute_grid(-10, 5, 1, 128)[0][0] == -10


@pytest.mark.unit
class TestBuildIndex:
    """Test the note -> pads index."""

    @pytest.mark.parametrize(
        "start,row,column,width",
        [(30, 5, 1, 128), (30, 16, 1, 128), (0, 3, 1, 200), (100, 7, 2, 128), (-20, 5, 1, 128)],
    )
    def test_round_trip(self, start, row, column, width):
        """Every valid grid note is indexed, and only at pads that play it."""
        grid = compute_grid(start, row, column, width)
        index = build_index(grid, start)

        for x, column_values in enumerate(grid):
            for y, value in enumerate(column_values):
                if 0 <= value <= 127:
                    assert (x, y) in index[value]

        for note, pads in index.items():
            for x, y in pads:
                assert grid[x][y] == note

    def test_overlapping_rows(self):
        """With a row interval of 5 a note sits on several pads."""
        index = build_index(compute_grid(30, 5, 1, 128), 30)
        assert index[35] == ((0, 1), (5, 0))
        assert index[30] == ((0, 0),)

    def test_no_overlap(self):
        """A row interval equal to the width puts every note on one pad."""
        index = build_index(compute_grid(30, 16, 1, 128), 30)
        assert all(len(pads) <= 1 for pads in index.values())

    def test_notes_off_grid_map_to_empty(self):
        """Notes >= start that are not on the grid map to no pads."""
        index = build_index(compute_grid(30, 5, 1, 128), 30)
        assert index[127] == ()
        assert 29 not in index

    def test_invalid_cells_not_indexed(self):
        index = build_index(compute_grid(120, 5, 1, 128), 120)
        assert set(index) == set(range(120, 128))
        assert 150 not in index

    def test_negative_start_indexes_from_zero(self):
        index = build_index(compute_grid(-5, 5, 1, 128), -5)
        assert min(index) == 0
        assert (5, 0) in index[0]


@pytest.mark.unit
class TestGridMap:
    """Test the immutable grid wrapper."""

    @pytest.fixture
    def grid_map(self):
        return GridMap(LayoutState())

    def test_coordinates(self, grid_map):
        assert grid_map.coordinates(30) == ((0, 0),)
        assert grid_map.coordinates(5) == ()

    def test_note_at(self, grid_map):
        assert grid_map.note_at(0, 0) == 30
        assert grid_map.note_at(2, 1) == 37

    def test_value_at_out_of_bounds(self, grid_map):
        with pytest.raises(IndexError):
            grid_map.value_at(16, 0)
        with pytest.raises(IndexError):
            grid_map.value_at(0, 8)

    def test_invalid_cells_render_as_sentinel(self):
        grid_map = GridMap(LayoutState(start_note_number=120))
        assert grid_map.note_at(15, 7) is None
        assert grid_map.cell_label(15, 7) == INVALID_LABEL
        assert grid_map.cell_label(0, 0) == "C9"

    def test_cells_cover_every_pad(self, grid_map):
        assert len(list(grid_map.cells())) == 16 * 8

    def test_render_top_row_first(self, grid_map):
        lines = grid_map.render().splitlines()
        assert len(lines) == 8
        assert lines[-1].split()[0] == "F#1"  # note 30
        assert lines[0].split()[0] == "F4"  # note 65

    def test_layout_is_kept(self, grid_map):
        assert grid_map.layout == LayoutState()
        assert grid_map.columns == 16
        assert grid_map.rows == 8
