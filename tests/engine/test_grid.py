"""Tests for the grid geometry and cell access."""

import pytest

from naval_duel.engine.grid import (
    GRID_SIZE,
    Coordinate,
    Direction,
    Grid,
    cell_at,
    end_coordinate,
    in_bounds,
    segment,
)


def test_new_grid_is_empty() -> None:
    grid = Grid()
    cells = list(grid.cells())
    assert len(cells) == GRID_SIZE * GRID_SIZE
    assert not any(cell.has_ship or cell.was_shot for _, cell in cells)
    assert grid.occupied_count() == 0


def test_cell_at_returns_the_same_cell_each_time() -> None:
    grid = Grid()
    cell = cell_at(grid, 3, 7)
    cell.was_shot = True
    assert cell_at(grid, 3, 7) is cell
    assert not cell_at(grid, 7, 3).was_shot


def test_cell_at_rejects_out_of_bounds() -> None:
    grid = Grid()
    with pytest.raises(ValueError):
        cell_at(grid, GRID_SIZE, 0)
    with pytest.raises(ValueError):
        cell_at(grid, 0, -1)


@pytest.mark.parametrize(
    ("direction", "expected"),
    [
        (Direction.UP, Coordinate(5, 3)),
        (Direction.DOWN, Coordinate(5, 7)),
        (Direction.LEFT, Coordinate(3, 5)),
        (Direction.RIGHT, Coordinate(7, 5)),
    ],
)
def test_end_coordinate_follows_screen_axes(direction: Direction, expected: Coordinate) -> None:
    assert end_coordinate(Coordinate(5, 5), 3, direction) == expected


def test_segment_is_inclusive_regardless_of_endpoint_order() -> None:
    forward = segment(Coordinate(2, 4), Coordinate(5, 4))
    backward = segment(Coordinate(5, 4), Coordinate(2, 4))
    assert forward == backward == [Coordinate(x, 4) for x in range(2, 6)]


def test_in_bounds_edges() -> None:
    assert in_bounds(Coordinate(0, 0))
    assert in_bounds(Coordinate(9, 9))
    assert not in_bounds(Coordinate(10, 0))
    assert not in_bounds(Coordinate(0, -1))
