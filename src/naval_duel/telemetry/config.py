"""Telemetry configuration loaded from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

from pydantic import BaseModel, Field

from .logger import init_logging
from .metrics import init_metrics
from .tracer import init_tracing

_TRUTHY = {"1", "true", "yes", "on"}

_BOOL_FIELDS = {
    "enable_tracing": ("NAVAL_DUEL_ENABLE_TRACING", "OTEL_TRACES_ENABLED"),
    "enable_metrics": ("NAVAL_DUEL_ENABLE_METRICS", "OTEL_METRICS_ENABLED"),
    "enable_logging": ("NAVAL_DUEL_ENABLE_LOGGING", "OTEL_LOGS_ENABLED"),
}

_ENDPOINT_FIELDS = {
    "otlp_traces_endpoint": ("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "v1/traces", "enable_tracing"),
    "otlp_metrics_endpoint": ("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT", "v1/metrics", "enable_metrics"),
    "otlp_logs_endpoint": ("OTEL_EXPORTER_OTLP_LOGS_ENDPOINT", "v1/logs", "enable_logging"),
}


class TelemetryConfig(BaseModel):
    """Which telemetry exporters to run and where to send their data."""

    enable_tracing: bool = False
    enable_metrics: bool = False
    enable_logging: bool = False
    otlp_traces_endpoint: str | None = None
    otlp_metrics_endpoint: str | None = None
    otlp_logs_endpoint: str | None = None
    service_name: str = "naval-duel"
    service_namespace: str = "game"
    resource_attributes: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_env(cls, **overrides: Any) -> "TelemetryConfig":
        """Build a config from ``NAVAL_DUEL_*`` and ``OTEL_*`` variables."""

        data: Dict[str, Any] = cls().model_dump()
        data.update(overrides)

        for field, env_names in _BOOL_FIELDS.items():
            for name in env_names:
                value = os.getenv(name)
                if value is not None:
                    data[field] = value.strip().lower() in _TRUTHY
                    break

        base_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        for field, (env_name, suffix, flag) in _ENDPOINT_FIELDS.items():
            if data.get(field):
                continue
            endpoint = os.getenv(env_name)
            if not endpoint and base_endpoint:
                endpoint = f"{base_endpoint.rstrip('/')}/{suffix}"
            if endpoint:
                data[field] = endpoint
                # An explicit endpoint turns its exporter on.
                data[flag] = True

        service_name = os.getenv("OTEL_SERVICE_NAME")
        if service_name:
            data["service_name"] = service_name
        service_namespace = os.getenv("OTEL_SERVICE_NAMESPACE")
        if service_namespace:
            data["service_namespace"] = service_namespace

        resource_env = os.getenv("OTEL_RESOURCE_ATTRIBUTES")
        if resource_env:
            attrs = dict(data.get("resource_attributes", {}))
            for part in resource_env.split(","):
                if "=" not in part:
                    continue
                key, value = part.split("=", 1)
                attrs[key.strip()] = value.strip()
            data["resource_attributes"] = attrs

        return cls(**data)

    def resource_dict(self) -> dict[str, str]:
        attributes = {
            "service.name": self.service_name,
            "service.namespace": self.service_namespace,
        }
        attributes.update(self.resource_attributes)
        return attributes


@lru_cache(maxsize=1)
def load_telemetry_config() -> TelemetryConfig:
    """Load and cache telemetry config from the environment."""

    return TelemetryConfig.from_env()


def init_telemetry(config: TelemetryConfig | None = None) -> TelemetryConfig:
    """Initialise the enabled telemetry subsystems."""

    resolved = config or load_telemetry_config()

    if resolved.enable_tracing:
        init_tracing(resolved)
    if resolved.enable_metrics:
        init_metrics(resolved)
    if resolved.enable_logging:
        init_logging(resolved)
    return resolved
