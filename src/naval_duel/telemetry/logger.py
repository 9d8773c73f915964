"""Logging helpers with optional OpenTelemetry export."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .config import TelemetryConfig

ROOT_LOGGER_NAME = "naval_duel"
LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s "
    "| trace_id=%(otelTraceID)s span_id=%(otelSpanID)s"
)

_LOGGERS: dict[str, logging.Logger] = {}
_OTLP_HANDLER: logging.Handler | None = None


class _OtelContextFilter(logging.Filter):
    """Fill trace/span placeholders when no span is active."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        if not hasattr(record, "otelTraceID"):
            record.otelTraceID = "-"
        if not hasattr(record, "otelSpanID"):
            record.otelSpanID = "-"
        return True


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    logger = _LOGGERS.get(name)
    if logger is None:
        logger = logging.getLogger(name)
        _LOGGERS[name] = logger
    return logger


def init_file_logging(path: str, level: int = logging.INFO) -> logging.Handler:
    """Send package logs to ``path`` so they stay off the game screen."""
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(_OtelContextFilter())
    root = get_logger()
    root.setLevel(level)
    root.addHandler(handler)
    return handler


def silence_console() -> None:
    """Keep engine warnings from leaking onto the terminal when nothing is configured."""
    root = get_logger()
    if not root.handlers:
        root.addHandler(logging.NullHandler())


def init_logging(config: TelemetryConfig) -> logging.Logger:
    """Export package logs over OTLP when a logs endpoint is configured."""
    global _OTLP_HANDLER
    logger = get_logger()
    if not config.otlp_logs_endpoint or _OTLP_HANDLER is not None:
        return logger

    from opentelemetry._logs import set_logger_provider
    from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
    from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
    from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
    from opentelemetry.sdk.resources import Resource

    provider = LoggerProvider(resource=Resource.create(config.resource_dict()))
    exporter = OTLPLogExporter(endpoint=config.otlp_logs_endpoint, insecure=True)
    provider.add_log_record_processor(BatchLogRecordProcessor(exporter))
    set_logger_provider(provider)

    handler = LoggingHandler(level=logging.INFO, logger_provider=provider)
    handler.addFilter(_OtelContextFilter())
    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    _OTLP_HANDLER = handler
    return logger
