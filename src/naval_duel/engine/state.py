"""Players and the per-game state container."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum

from .fleet import Fleet
from .grid import Grid


class Player(Enum):
    """The two seats at the terminal."""

    A = "A"
    B = "B"

    def opponent(self) -> Player:
        """Return the opposing player."""
        return Player.B if self is Player.A else Player.A


def opponent(player: Player) -> Player:
    return player.opponent()


def _grids() -> dict[Player, Grid]:
    return {player: Grid(owner=player.value) for player in Player}


def _fleets() -> dict[Player, Fleet]:
    return {player: Fleet(owner=player.value) for player in Player}


@dataclass
class GameState:
    """Grids and fleets for one game.

    All multi-cell reads and writes happen while holding ``lock`` so that a
    placement or a shot is never observed half-applied.
    """

    grids: dict[Player, Grid] = field(default_factory=_grids)
    fleets: dict[Player, Fleet] = field(default_factory=_fleets)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def grid(self, player: Player) -> Grid:
        return self.grids[player]

    def fleet(self, player: Player) -> Fleet:
        return self.fleets[player]
