"""Hot-seat terminal front end: two players sharing one screen."""

from __future__ import annotations

import argparse
import logging
import re
from typing import Callable, Sequence

from naval_duel.engine.fleet import SHIP_LENGTHS
from naval_duel.engine.grid import GRID_SIZE, Coordinate, Direction
from naval_duel.engine.instrumented import InstrumentedTurnController
from naval_duel.engine.shots import HitResult
from naval_duel.engine.state import Player
from naval_duel.engine.turns import (
    BoardSnapshot,
    Phase,
    PlaceShip,
    Shoot,
    TurnController,
)
from naval_duel.telemetry import init_file_logging, init_telemetry, silence_console

logger = logging.getLogger(__name__)

CLEAR_LINES = 100
QUIT_WORDS = {"q", "quit", "exit"}

_PLACEMENT_RE = re.compile(r"\[\s*(\d+)\s+(\d+)\s*\]\s*([A-Za-z]+)")
_SHOT_RE = re.compile(r"\[?\s*(\d+)\s+(\d+)\s*\]?")


class InputError(ValueError):
    """Raised when typed input cannot be understood."""


def parse_placement(text: str) -> tuple[Coordinate, Direction]:
    """Parse ``"[x y] dir"`` into a start coordinate and direction."""
    match = _PLACEMENT_RE.fullmatch(text.strip())
    if match is None:
        raise InputError(f"Expected '[x y] dir', got {text!r}.")
    x, y, word = match.groups()
    try:
        direction = Direction(word.lower())
    except ValueError as exc:
        raise InputError(f"Unknown direction {word!r}.") from exc
    return Coordinate(int(x), int(y)), direction


def parse_shot(text: str) -> Coordinate:
    """Parse ``"[x y]"`` (brackets optional) into a coordinate."""
    match = _SHOT_RE.fullmatch(text.strip())
    if match is None:
        raise InputError(f"Expected '[x y]', got {text!r}.")
    return Coordinate(int(match.group(1)), int(match.group(2)))


def _cell_symbol(
    coord: Coordinate, ship_cells: set[Coordinate], shots: frozenset[Coordinate], reveal: bool
) -> str:
    if coord in shots:
        return "H" if coord in ship_cells else "M"
    if reveal and coord in ship_cells:
        return "S"
    return "-"


def render_board(board: BoardSnapshot, *, reveal_ships: bool) -> str:
    """Render a board. Unshot ships are only drawn when ``reveal_ships`` is set."""
    ship_cells = {coord for ship in board.ships for coord in ship}
    lines = [
        ("Own" if reveal_ships else "Opponent") + " board:",
        "  " + " ".join(str(x) for x in range(GRID_SIZE)),
    ]
    for y in range(GRID_SIZE):
        row = "".join(
            _cell_symbol(Coordinate(x, y), ship_cells, board.shots, reveal_ships) + " "
            for x in range(GRID_SIZE)
        )
        lines.append(f"{y} {row}")
    return "\n".join(lines)


class TerminalGame:
    """Runs a full game, turning typed text into controller events."""

    def __init__(
        self,
        controller: TurnController | None = None,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
        clear_screen: bool = True,
    ) -> None:
        self.controller = controller if controller is not None else TurnController()
        self._input = input_fn
        self._output = output_fn
        self._clear_screen = clear_screen

    def run(self) -> Player:
        """Play until someone wins and return the winner."""
        self._space()
        self._read("Welcome to Battleship! Press enter to start.")
        self._setup()
        self._switch_player(Player.A)
        return self._combat()

    def _read(self, prompt: str = "") -> str:
        if prompt:
            self._output(prompt)
        try:
            raw = self._input("")
        except EOFError:
            raise SystemExit("Goodbye!") from None
        if raw.strip().lower() in QUIT_WORDS:
            raise SystemExit("Goodbye!")
        return raw

    def _space(self) -> None:
        if self._clear_screen:
            self._output("\n" * (CLEAR_LINES - 1))

    def _switch_player(self, to: Player, note: str | None = None) -> None:
        self._space()
        if note:
            self._output(note)
        self._read(
            f"Player {to.opponent().value}, look away from the screen. "
            f"Player {to.value}, press enter to take your turn."
        )
        self._space()

    def _own_board(self, player: Player) -> str:
        return render_board(self.controller.snapshot().boards[player], reveal_ships=True)

    def _setup(self) -> None:
        controller = self.controller
        while controller.phase is Phase.SETUP:
            player = controller.active_player
            self._switch_player(player)
            note = (
                f"Player {player.value}, it is time to place your ships. You have ships "
                f"of the following lengths: {list(SHIP_LENGTHS)}."
            )
            while controller.phase is Phase.SETUP and controller.active_player is player:
                self._space()
                if note:
                    self._output(note)
                note = self._place_one(player, controller.length_to_place)
            self._output("Thank you. Below is your board setup:")
            self._output(self._own_board(player))

    def _place_one(self, player: Player, length: int) -> str | None:
        """Ask for one placement and return a message for the next screen, if any."""
        self._output(self._own_board(player))
        raw = self._read(
            f"Where would you like to place a length {length} ship? Please use the format "
            f'"[x y] dir" to specify where you want the ship to go (x and y are 0 indexed '
            f"with [0 0] in the top left, and dir can be up, down, left, or right). "
            f"This is a {GRID_SIZE}x{GRID_SIZE} grid."
        )
        try:
            origin, direction = parse_placement(raw)
        except InputError as exc:
            logger.debug(
                "placement_input_unparsed", extra={"player": player.value, "error": str(exc)}
            )
            return "Sorry, I couldn't parse that input."
        outcome = self.controller.advance(PlaceShip(origin, direction))
        if not outcome.accepted:
            return "That is an invalid ship location."
        return None

    def _combat(self) -> Player:
        controller = self.controller
        while controller.phase is Phase.COMBAT:
            player = controller.active_player
            snapshot = controller.snapshot()
            self._output(render_board(snapshot.boards[player], reveal_ships=True))
            self._output(render_board(snapshot.boards[player.opponent()], reveal_ships=False))
            raw = self._read(
                f"Player {player.value}, choose a cell to shoot at. Enter your choice "
                f'in the format "[x y]".'
            )
            try:
                target = parse_shot(raw)
            except InputError:
                self._output("Sorry, I couldn't parse your input.")
                continue

            outcome = controller.advance(Shoot(target))
            if not outcome.accepted:
                self._space()
                self._output("Invalid shot.")
            elif outcome.winner is not None:
                self._space()
                self._output(f"Player {outcome.winner.value} has won!")
            elif outcome.result is HitResult.HIT:
                self._space()
                self._output("Sunk!" if outcome.sunk else "Hit!")
            else:
                self._switch_player(player.opponent(), note="Miss.")
        return controller.winner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Play a two-player game of Battleship in one terminal.")
    parser.add_argument(
        "--no-clear",
        action="store_true",
        help="Do not scroll the screen between turns (handy when debugging).",
    )
    parser.add_argument(
        "--telemetry",
        action="store_true",
        help="Initialise tracing/metrics/logging exporters from NAVAL_DUEL_* and OTEL_* variables.",
    )
    parser.add_argument("--log-file", default=None, help="Write engine logs to this file.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Level for --log-file.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_file:
        init_file_logging(args.log_file, getattr(logging, args.log_level))
    else:
        silence_console()
    if args.telemetry:
        init_telemetry()

    game = TerminalGame(InstrumentedTurnController(), clear_screen=not args.no_clear)
    winner = game.run()
    logger.info("session_finished", extra={"winner": winner.value})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
