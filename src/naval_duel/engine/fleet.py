"""Ship and fleet model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from .grid import Cell, Coordinate

SHIP_LENGTHS: tuple[int, ...] = (2, 3, 3, 4, 5)
FLEET_SIZE = len(SHIP_LENGTHS)


@dataclass(frozen=True)
class Ship:
    """A placed ship: its coordinates and the grid cells behind them."""

    coordinates: tuple[Coordinate, ...]
    cells: tuple[Cell, ...] = field(compare=False, repr=False)

    @property
    def length(self) -> int:
        return len(self.coordinates)

    def contains(self, coord: Coordinate) -> bool:
        """Return True if the ship occupies ``coord``."""
        return coord in self.coordinates


@dataclass
class Fleet:
    """Ordered ships belonging to one player, filled during setup."""

    owner: str = "unknown"
    ships: list[Ship] = field(default_factory=list)

    def __iter__(self) -> Iterator[Ship]:
        return iter(self.ships)

    def __len__(self) -> int:
        return len(self.ships)

    @property
    def is_complete(self) -> bool:
        return len(self.ships) >= FLEET_SIZE

    def add(self, ship: Ship) -> None:
        """Append a ship. A complete fleet is read-only."""
        if self.is_complete:
            raise RuntimeError(f"Fleet for {self.owner} is already complete.")
        self.ships.append(ship)
