"""Shot resolution against the opponent's grid."""

from __future__ import annotations

import logging
from enum import Enum

from naval_duel.telemetry import get_meter, get_tracer

from .fleet import Ship
from .grid import Coordinate, cell_at, in_bounds
from .state import GameState, Player

logger = logging.getLogger(__name__)
tracer = get_tracer("naval_duel.engine.shots")
meter = get_meter("naval_duel.engine.shots")

SHOT_COUNTER = meter.create_counter(
    "naval_duel_engine_shots",
    unit="1",
    description="Shots fired at a grid",
)


class HitResult(Enum):
    """Outcome of a single shot."""

    HIT = "hit"
    MISS = "miss"


def is_valid_shot(state: GameState, player: Player, target: Coordinate) -> bool:
    """Return True if ``player`` may fire at ``target`` on the opponent's grid."""
    if not in_bounds(target):
        return False
    grid = state.grid(player.opponent())
    with state.lock:
        return not cell_at(grid, target.x, target.y).was_shot


def fire_shot(state: GameState, player: Player, target: Coordinate) -> HitResult:
    """Fire at the opponent's grid. Assumes :func:`is_valid_shot` passed."""
    with tracer.start_as_current_span("resolver.fire_shot") as span:
        span.set_attribute("player", player.value)
        span.set_attribute("shot.x", target.x)
        span.set_attribute("shot.y", target.y)

        grid = state.grid(player.opponent())
        with state.lock:
            cell = cell_at(grid, target.x, target.y)
            if cell.was_shot:
                logger.error(
                    "shot_duplicate",
                    extra={"player": player.value, "x": target.x, "y": target.y},
                )
                raise ValueError("Cell has already been targeted.")
            cell.was_shot = True
            result = HitResult.HIT if cell.has_ship else HitResult.MISS

        span.set_attribute("shot.outcome", result.value)
        SHOT_COUNTER.add(1, attributes={"outcome": result.value, "player": player.value})
        logger.info(
            f"shot_{result.value}",
            extra={"player": player.value, "x": target.x, "y": target.y},
        )
        return result


def is_sunk(ship: Ship) -> bool:
    """Return True once every cell of the ship has been shot."""
    return all(cell.was_shot for cell in ship.cells)


def has_lost(state: GameState, player: Player) -> bool:
    """Return True if the player's whole fleet is sunk. An empty fleet has not lost."""
    fleet = state.fleet(player)
    with state.lock:
        return len(fleet) > 0 and all(is_sunk(ship) for ship in fleet)


def ship_at(state: GameState, player: Player, location: Coordinate) -> Ship | None:
    """Return the ship in ``player``'s fleet covering ``location``, if any."""
    for ship in state.fleet(player):
        if ship.contains(location):
            return ship
    return None
