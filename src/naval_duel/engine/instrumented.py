"""Turn controller with game-level tracing, metrics and logging."""

from __future__ import annotations

import time

from naval_duel.telemetry import get_logger, get_tracer, record_game_metric

from .state import GameState
from .turns import Event, PlaceShip, Phase, TurnController, TurnOutcome


class InstrumentedTurnController(TurnController):
    """Wraps TurnController.advance with a span per game and per event."""

    def __init__(self, state: GameState | None = None) -> None:
        super().__init__(state)
        self._logger = get_logger("naval_duel.engine")
        self._tracer = get_tracer("naval_duel.engine")
        self._game_span_cm = None
        self._game_span = None
        self._game_start_time: float | None = None
        self._game_id = 0
        self._shots_fired = 0

    def advance(self, event: Event) -> TurnOutcome:
        if self._game_span_cm is None and self.phase is not Phase.GAME_OVER:
            self._start_game_span()

        kind = "place_ship" if isinstance(event, PlaceShip) else "shoot"
        with self._tracer.start_as_current_span("naval_duel.engine.advance") as span:
            span.set_attribute("game.id", self._game_id)
            span.set_attribute("event", kind)
            span.set_attribute("phase", self.phase.value)

            try:
                outcome = super().advance(event)
            except RuntimeError as exc:
                record_game_metric(
                    "naval_duel_rejected_events_total", 1, {"event": kind, "reason": "wrong_phase"}
                )
                span.record_exception(exc)
                span.set_attribute("error", True)
                self._logger.error("Event %s rejected in phase %s: %s", kind, self.phase.value, exc)
                raise

            span.set_attribute("player", outcome.player.value)
            span.set_attribute("accepted", outcome.accepted)
            record_game_metric(
                "naval_duel_events_total",
                1,
                {"event": kind, "player": outcome.player.value, "accepted": outcome.accepted},
            )
            if not outcome.accepted:
                record_game_metric(
                    "naval_duel_rejected_events_total", 1, {"event": kind, "reason": "invalid"}
                )
            elif outcome.result is not None:
                self._shots_fired += 1
                span.set_attribute("shot_outcome", outcome.result.value)
                span.set_attribute("sunk", outcome.sunk)
                record_game_metric(
                    "naval_duel_shots_by_result_total",
                    1,
                    {"player": outcome.player.value, "result": outcome.result.value},
                )

            if outcome.winner is not None:
                span.set_attribute("winner", outcome.winner.value)

        if outcome.winner is not None:
            self._finish_game()
        return outcome

    def _start_game_span(self) -> None:
        self._game_start_time = time.perf_counter()
        self._game_id += 1
        self._shots_fired = 0
        self._game_span_cm = self._tracer.start_as_current_span("naval_duel.engine.game")
        self._game_span = self._game_span_cm.__enter__()
        self._game_span.set_attribute("game.id", self._game_id)
        self._logger.info("Game %d started", self._game_id)

    def _finish_game(self) -> None:
        duration = (time.perf_counter() - self._game_start_time) if self._game_start_time else 0.0
        winner = self.winner.value if self.winner else "unknown"

        record_game_metric("naval_duel_game_completed_total", 1, {"winner": winner})
        record_game_metric("naval_duel_game_duration_seconds", duration, {"winner": winner})

        if self._game_span is not None:
            self._game_span.set_attribute("winner", winner)
            self._game_span.set_attribute("shots", self._shots_fired)
            self._game_span.set_attribute("duration_ms", duration * 1000)

        self._logger.info(
            "Game finished. Winner=%s shots=%d duration_s=%.3f", winner, self._shots_fired, duration
        )
        self._close_game_span()

    def _close_game_span(self) -> None:
        if self._game_span_cm is not None:
            self._game_span_cm.__exit__(None, None, None)
            self._game_span_cm = None
            self._game_span = None
