"""Telemetry instrumentation unit tests."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest

from naval_duel.engine.grid import Coordinate, Direction
from naval_duel.engine.instrumented import InstrumentedTurnController
from naval_duel.engine.placement import place_ship
from naval_duel.engine.state import GameState, Player
from naval_duel.engine.turns import Combat, PlaceShip, Shoot
from naval_duel.telemetry import config as telemetry_config_module
from naval_duel.telemetry import logger as logger_module
from naval_duel.telemetry import metrics as metrics_module
from naval_duel.telemetry import tracer as tracer_module
from naval_duel.telemetry.config import TelemetryConfig


class DummySpan:
    def __init__(self, names: list[str], span_name: str) -> None:
        self._names = names
        self._names.append(span_name)
        self.attributes: dict[str, object] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    def set_attribute(self, key, value):
        self.attributes[key] = value

    def record_exception(self, exc):
        self.attributes["exception"] = exc


class DummyTracer:
    def __init__(self) -> None:
        self.span_names: list[str] = []

    def start_as_current_span(self, name: str):
        return DummySpan(self.span_names, name)


def reset_singletons() -> None:
    tracer_module._TRACER = None
    tracer_module._TRACER_PROVIDER = None
    metrics_module._METER = None
    metrics_module._METER_PROVIDER = None
    metrics_module._INSTRUMENTS = {}
    logger_module._LOGGERS.clear()
    logger_module._OTLP_HANDLER = None


@pytest.fixture
def instrumented(monkeypatch: pytest.MonkeyPatch):
    tracer = DummyTracer()
    metric_calls: list[tuple[str, float, dict | None]] = []
    logger = MagicMock()

    monkeypatch.setattr("naval_duel.engine.instrumented.get_tracer", lambda *_: tracer)
    monkeypatch.setattr("naval_duel.engine.instrumented.get_logger", lambda *_: logger)
    monkeypatch.setattr(
        "naval_duel.engine.instrumented.record_game_metric",
        lambda name, value, attrs=None: metric_calls.append((name, value, attrs)),
    )
    return tracer, metric_calls, logger


def test_lazy_init_tracer_and_meter(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    assert tracer_module.get_tracer() is tracer_module.get_tracer()

    provider_instance = MagicMock()
    provider_instance.get_tracer.return_value = MagicMock()
    monkeypatch.setattr(tracer_module, "TracerProvider", MagicMock(return_value=provider_instance))
    monkeypatch.setattr(tracer_module, "OTLPSpanExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(tracer_module.trace, "set_tracer_provider", MagicMock())
    tracer_module.init_tracing(
        TelemetryConfig(enable_tracing=True, otlp_traces_endpoint="http://example")
    )
    assert tracer_module._TRACER is provider_instance.get_tracer.return_value

    meter_provider = MagicMock()
    meter_provider.get_meter.return_value = MagicMock()
    monkeypatch.setattr(metrics_module, "MeterProvider", MagicMock(return_value=meter_provider))
    monkeypatch.setattr(metrics_module, "OTLPMetricExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(
        metrics_module, "PeriodicExportingMetricReader", MagicMock(return_value=MagicMock())
    )
    monkeypatch.setattr(metrics_module.otel_metrics, "set_meter_provider", MagicMock())
    metrics_module.init_metrics(
        TelemetryConfig(enable_metrics=True, otlp_metrics_endpoint="http://example")
    )
    assert metrics_module._METER is meter_provider.get_meter.return_value
    reset_singletons()


def test_record_game_metric_reuses_counters(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    meter = MagicMock()
    monkeypatch.setattr(metrics_module, "_METER", meter)

    metrics_module.record_game_metric("naval_duel_test_total", 1, {"player": "A"})
    metrics_module.record_game_metric("naval_duel_test_total", 2)

    meter.create_counter.assert_called_once_with("naval_duel_test_total")
    counter = meter.create_counter.return_value
    counter.add.assert_any_call(1, attributes={"player": "A"})
    counter.add.assert_any_call(2, attributes={})
    reset_singletons()


def test_logging_init_without_endpoint_is_noop() -> None:
    reset_singletons()
    logger = logger_module.get_logger()
    assert logger_module.init_logging(TelemetryConfig(enable_logging=True)) is logger
    assert logger_module._OTLP_HANDLER is None


def test_init_telemetry_noop(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(telemetry_config_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(telemetry_config_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(telemetry_config_module, "init_logging", lambda cfg: calls.append("lo"))

    telemetry_config_module.init_telemetry(TelemetryConfig())
    assert calls == []


def test_init_telemetry_respects_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(telemetry_config_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(telemetry_config_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(telemetry_config_module, "init_logging", lambda cfg: calls.append("lo"))

    config = TelemetryConfig(enable_tracing=True, enable_logging=True)
    telemetry_config_module.init_telemetry(config)
    assert calls == ["tr", "lo"]


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "OTEL_TRACES_ENABLED",
        "OTEL_METRICS_ENABLED",
        "OTEL_LOGS_ENABLED",
        "NAVAL_DUEL_ENABLE_LOGGING",
        "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
        "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
        "OTEL_EXPORTER_OTLP_LOGS_ENDPOINT",
        "OTEL_SERVICE_NAMESPACE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("NAVAL_DUEL_ENABLE_TRACING", "yes")
    monkeypatch.setenv("NAVAL_DUEL_ENABLE_METRICS", "0")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317/")
    monkeypatch.setenv("OTEL_SERVICE_NAME", "duel-test")
    monkeypatch.setenv("OTEL_RESOURCE_ATTRIBUTES", "deployment=ci, bogus ,team=games")

    config = TelemetryConfig.from_env()

    assert config.enable_tracing is True
    assert config.otlp_traces_endpoint == "http://collector:4317/v1/traces"
    assert config.otlp_logs_endpoint == "http://collector:4317/v1/logs"
    # An endpoint turns its exporter on even when the flag says otherwise.
    assert config.enable_metrics is True
    assert config.enable_logging is True
    assert config.service_name == "duel-test"
    assert config.resource_attributes == {"deployment": "ci", "team": "games"}
    assert config.resource_dict()["service.name"] == "duel-test"


def test_config_defaults_without_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith(("OTEL_", "NAVAL_DUEL_")):
            monkeypatch.delenv(name)
    config = TelemetryConfig.from_env()
    assert config == TelemetryConfig()


def test_load_telemetry_config_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    telemetry_config_module.load_telemetry_config.cache_clear()
    calls = {"count": 0}

    def fake_from_env(cls, **overrides):
        calls["count"] += 1
        return TelemetryConfig(enable_tracing=True)

    monkeypatch.setattr(TelemetryConfig, "from_env", classmethod(fake_from_env))

    first = telemetry_config_module.load_telemetry_config()
    second = telemetry_config_module.load_telemetry_config()
    assert first is second
    assert calls["count"] == 1
    telemetry_config_module.load_telemetry_config.cache_clear()


def test_instrumented_controller_emits_spans(instrumented) -> None:
    tracer, metric_calls, logger = instrumented
    state = GameState()
    place_ship(state, Player.B, Coordinate(0, 0), 2, Direction.RIGHT)
    controller = InstrumentedTurnController(state)
    controller.current = Combat(Player.A)

    controller.advance(Shoot(Coordinate(0, 0)))
    assert "naval_duel.engine.game" in tracer.span_names
    assert "naval_duel.engine.advance" in tracer.span_names
    metric_names = {name for name, _, _ in metric_calls}
    assert "naval_duel_events_total" in metric_names
    assert "naval_duel_shots_by_result_total" in metric_names
    assert "naval_duel_game_completed_total" not in metric_names

    tracer.span_names.clear()
    metric_calls.clear()
    outcome = controller.advance(Shoot(Coordinate(1, 0)))
    assert outcome.winner is Player.A
    assert "naval_duel.engine.game" not in tracer.span_names
    metric_names = {name for name, _, _ in metric_calls}
    assert "naval_duel_game_completed_total" in metric_names
    assert "naval_duel_game_duration_seconds" in metric_names
    assert controller._game_span_cm is None


def test_instrumented_controller_counts_rejections(instrumented) -> None:
    tracer, metric_calls, logger = instrumented
    controller = InstrumentedTurnController()

    outcome = controller.advance(PlaceShip(Coordinate(9, 9), Direction.DOWN))
    assert not outcome.accepted
    rejected = [
        attrs for name, _, attrs in metric_calls if name == "naval_duel_rejected_events_total"
    ]
    assert rejected == [{"event": "place_ship", "reason": "invalid"}]

    with pytest.raises(RuntimeError):
        controller.advance(Shoot(Coordinate(0, 0)))
    assert logger.error.called
    reasons = [
        attrs["reason"]
        for name, _, attrs in metric_calls
        if name == "naval_duel_rejected_events_total"
    ]
    assert reasons == ["invalid", "wrong_phase"]
