"""Turn controller: the state machine that sequences setup and combat."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

from naval_duel.telemetry import get_meter, get_tracer

from .fleet import FLEET_SIZE, SHIP_LENGTHS
from .grid import Coordinate, Direction
from .placement import is_valid_placement, place_ship
from .shots import HitResult, fire_shot, has_lost, is_sunk, is_valid_shot, ship_at
from .state import GameState, Player

logger = logging.getLogger(__name__)
tracer = get_tracer("naval_duel.engine.turns")
meter = get_meter("naval_duel.engine.turns")

EVENT_COUNTER = meter.create_counter(
    "naval_duel_engine_events",
    unit="1",
    description="Events applied to the turn controller",
)

FIRST_PLAYER = Player.A


class Phase(Enum):
    """High-level lifecycle of a game."""

    SETUP = "setup"
    COMBAT = "combat"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class Setup:
    player: Player
    ship_index: int

    @property
    def length(self) -> int:
        return SHIP_LENGTHS[self.ship_index]


@dataclass(frozen=True)
class Combat:
    active_player: Player


@dataclass(frozen=True)
class GameOver:
    winner: Player


TurnState = Union[Setup, Combat, GameOver]


@dataclass(frozen=True)
class PlaceShip:
    """Place the current ship with one end at ``origin``."""

    origin: Coordinate
    direction: Direction


@dataclass(frozen=True)
class Shoot:
    target: Coordinate


Event = Union[PlaceShip, Shoot]


@dataclass(frozen=True)
class TurnOutcome:
    """What happened when an event was applied."""

    accepted: bool
    player: Player
    result: HitResult | None = None
    sunk: bool = False
    winner: Player | None = None


@dataclass(frozen=True)
class BoardSnapshot:
    """Read-only view of one player's grid."""

    ships: tuple[tuple[Coordinate, ...], ...]
    shots: frozenset[Coordinate]


@dataclass(frozen=True)
class GameSnapshot:
    """Immutable snapshot of the whole game."""

    phase: Phase
    active_player: Player | None
    length_to_place: int | None
    winner: Player | None
    boards: dict[Player, BoardSnapshot]


class TurnController:
    """Drives a game from setup to game over, one event at a time."""

    def __init__(self, state: GameState | None = None) -> None:
        self.state = state if state is not None else GameState()
        self.current: TurnState = Setup(FIRST_PLAYER, 0)

    @property
    def phase(self) -> Phase:
        if isinstance(self.current, Setup):
            return Phase.SETUP
        if isinstance(self.current, Combat):
            return Phase.COMBAT
        return Phase.GAME_OVER

    @property
    def active_player(self) -> Player | None:
        """The player expected to act next, or None once the game is over."""
        if isinstance(self.current, Setup):
            return self.current.player
        if isinstance(self.current, Combat):
            return self.current.active_player
        return None

    @property
    def length_to_place(self) -> int | None:
        if isinstance(self.current, Setup):
            return self.current.length
        return None

    @property
    def winner(self) -> Player | None:
        if isinstance(self.current, GameOver):
            return self.current.winner
        return None

    def advance(self, event: Event) -> TurnOutcome:
        """Apply one event and move the state machine accordingly."""
        with tracer.start_as_current_span("turns.advance") as span, self.state.lock:
            span.set_attribute("phase", self.phase.value)
            if isinstance(event, PlaceShip):
                outcome = self._place(event)
            elif isinstance(event, Shoot):
                outcome = self._shoot(event)
            else:
                raise TypeError(f"Unsupported event: {event!r}")
            span.set_attribute("accepted", outcome.accepted)
            EVENT_COUNTER.add(
                1,
                attributes={
                    "event": type(event).__name__,
                    "accepted": outcome.accepted,
                    "player": outcome.player.value,
                },
            )
            return outcome

    def _place(self, event: PlaceShip) -> TurnOutcome:
        current = self.current
        if not isinstance(current, Setup):
            logger.error("placement_rejected_wrong_phase", extra={"phase": self.phase.value})
            raise RuntimeError("Ships can only be placed during setup.")

        player, length = current.player, current.length
        if not is_valid_placement(self.state, player, event.origin, length, event.direction):
            return TurnOutcome(accepted=False, player=player)

        place_ship(self.state, player, event.origin, length, event.direction)
        self.current = self._after_placement(current)
        if isinstance(self.current, Combat):
            logger.info("setup_complete", extra={"first_player": self.current.active_player.value})
        return TurnOutcome(accepted=True, player=player)

    @staticmethod
    def _after_placement(current: Setup) -> TurnState:
        if current.ship_index + 1 < FLEET_SIZE:
            return Setup(current.player, current.ship_index + 1)
        if current.player is FIRST_PLAYER:
            return Setup(FIRST_PLAYER.opponent(), 0)
        return Combat(FIRST_PLAYER)

    def _shoot(self, event: Shoot) -> TurnOutcome:
        current = self.current
        if not isinstance(current, Combat):
            logger.error("shot_rejected_wrong_phase", extra={"phase": self.phase.value})
            raise RuntimeError("Shots can only be fired during combat.")

        player = current.active_player
        defender = player.opponent()
        if not is_valid_shot(self.state, player, event.target):
            logger.info(
                "shot_rejected",
                extra={"player": player.value, "x": event.target.x, "y": event.target.y},
            )
            return TurnOutcome(accepted=False, player=player)

        result = fire_shot(self.state, player, event.target)
        if result is HitResult.MISS:
            self.current = Combat(defender)
            return TurnOutcome(accepted=True, player=player, result=result)

        ship = ship_at(self.state, defender, event.target)
        sunk = ship is not None and is_sunk(ship)
        if has_lost(self.state, defender):
            self.current = GameOver(player)
            logger.info("game_finished", extra={"winner": player.value})
            return TurnOutcome(accepted=True, player=player, result=result, sunk=sunk, winner=player)
        return TurnOutcome(accepted=True, player=player, result=result, sunk=sunk)

    def snapshot(self) -> GameSnapshot:
        """Return an immutable view of the game."""
        with self.state.lock:
            boards = {
                player: BoardSnapshot(
                    ships=tuple(ship.coordinates for ship in self.state.fleet(player)),
                    shots=frozenset(
                        coord for coord, cell in self.state.grid(player).cells() if cell.was_shot
                    ),
                )
                for player in Player
            }
        return GameSnapshot(
            phase=self.phase,
            active_player=self.active_player,
            length_to_place=self.length_to_place,
            winner=self.winner,
            boards=boards,
        )
