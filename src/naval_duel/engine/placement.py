"""Ship placement validation and application."""

from __future__ import annotations

import logging

from naval_duel.telemetry import get_meter, get_tracer

from .fleet import Ship
from .grid import Coordinate, Direction, cell_at, end_coordinate, in_bounds, segment
from .state import GameState, Player

logger = logging.getLogger(__name__)
tracer = get_tracer("naval_duel.engine.placement")
meter = get_meter("naval_duel.engine.placement")

PLACEMENT_COUNTER = meter.create_counter(
    "naval_duel_engine_placements",
    unit="1",
    description="Number of ship placements checked or applied",
)


def is_valid_placement(
    state: GameState, player: Player, origin: Coordinate, length: int, direction: Direction
) -> bool:
    """Return True if a ship fits on the player's grid without overlap."""
    end = end_coordinate(origin, length, direction)
    details = {
        "player": player.value,
        "x": origin.x,
        "y": origin.y,
        "length": length,
        "direction": direction.value,
    }
    if not (in_bounds(origin) and in_bounds(end)):
        PLACEMENT_COUNTER.add(1, attributes={"result": "out_of_bounds", "player": player.value})
        logger.warning("placement_rejected", extra={**details, "reason": "out_of_bounds"})
        return False

    grid = state.grid(player)
    with state.lock:
        overlaps = any(cell_at(grid, c.x, c.y).has_ship for c in segment(origin, end))
    if overlaps:
        PLACEMENT_COUNTER.add(1, attributes={"result": "overlap", "player": player.value})
        logger.warning("placement_rejected", extra={**details, "reason": "overlap"})
        return False
    return True


def place_ship(
    state: GameState, player: Player, origin: Coordinate, length: int, direction: Direction
) -> Ship:
    """Mark the ship's cells and add it to the player's fleet.

    Assumes :func:`is_valid_placement` already returned True.
    """
    with tracer.start_as_current_span("placement.place_ship") as span:
        span.set_attribute("player", player.value)
        span.set_attribute("ship.length", length)
        span.set_attribute("ship.direction", direction.value)
        span.set_attribute("ship.origin.x", origin.x)
        span.set_attribute("ship.origin.y", origin.y)

        coords = segment(origin, end_coordinate(origin, length, direction))
        grid = state.grid(player)
        with state.lock:
            cells = tuple(cell_at(grid, c.x, c.y) for c in coords)
            ship = Ship(coordinates=tuple(coords), cells=cells)
            state.fleet(player).add(ship)
            for cell in cells:
                cell.has_ship = True

        PLACEMENT_COUNTER.add(1, attributes={"result": "placed", "player": player.value})
        logger.info(
            "ship_placed",
            extra={
                "player": player.value,
                "x": origin.x,
                "y": origin.y,
                "length": length,
                "direction": direction.value,
            },
        )
        return ship
