"""Grid and cell model for a single player's waters."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

logger = logging.getLogger(__name__)

GRID_SIZE = 10


@dataclass(frozen=True)
class Coordinate:
    """Immutable grid coordinate. ``y`` grows downward when rendered."""

    x: int
    y: int


class Direction(Enum):
    """Directions a ship can extend from its starting cell."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def delta(self) -> tuple[int, int]:
        """Return the ``(dx, dy)`` step for one cell in this direction."""
        return _DELTAS[self]


_DELTAS: dict[Direction, tuple[int, int]] = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}


@dataclass(eq=False)
class Cell:
    """A single square of a grid. Compared by identity."""

    has_ship: bool = False
    was_shot: bool = False


def in_bounds(coord: Coordinate) -> bool:
    """Check whether a coordinate lies inside the grid."""
    return 0 <= coord.x < GRID_SIZE and 0 <= coord.y < GRID_SIZE


def end_coordinate(origin: Coordinate, length: int, direction: Direction) -> Coordinate:
    """Return the far end of a ship of ``length`` extending from ``origin``."""
    dx, dy = direction.delta
    steps = length - 1
    return Coordinate(origin.x + dx * steps, origin.y + dy * steps)


def segment(start: Coordinate, end: Coordinate) -> list[Coordinate]:
    """Return every coordinate in the inclusive span between two endpoints."""
    x1, x2 = sorted((start.x, end.x))
    y1, y2 = sorted((start.y, end.y))
    return [Coordinate(x, y) for x in range(x1, x2 + 1) for y in range(y1, y2 + 1)]


@dataclass
class Grid:
    """A fixed 10×10 array of cells owned by one player."""

    owner: str = "unknown"
    _rows: list[list[Cell]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._rows = [[Cell() for _ in range(GRID_SIZE)] for _ in range(GRID_SIZE)]

    def cells(self) -> Iterator[tuple[Coordinate, Cell]]:
        """Yield every ``(coordinate, cell)`` pair, row by row."""
        for y, row in enumerate(self._rows):
            for x, cell in enumerate(row):
                yield Coordinate(x, y), cell

    def occupied_count(self) -> int:
        return sum(1 for _, cell in self.cells() if cell.has_ship)


def cell_at(grid: Grid, x: int, y: int) -> Cell:
    """Return the cell at ``(x, y)``. The caller must have checked bounds."""
    if not in_bounds(Coordinate(x, y)):
        logger.error("cell_out_of_bounds", extra={"x": x, "y": y, "owner": grid.owner})
        raise ValueError(f"Coordinate ({x}, {y}) is outside the grid.")
    return grid._rows[y][x]
