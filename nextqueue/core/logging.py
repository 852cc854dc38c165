"""Logging and tracing setup for the queue service."""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.trace import Tracer

from nextqueue.core.config import Settings

APP_LOGGER = "nextqueue"
ENGINE_TRACER = "nextqueue.queueing"

_active_provider: TracerProvider | None = None


def _parse_headers(header_string: str | None) -> dict[str, str]:
    """Turn ``key=value,key=value`` OTLP header text into a mapping."""

    headers: dict[str, str] = {}
    for item in (header_string or "").split(","):
        key, sep, value = item.partition("=")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers


def build_logging_config(settings: Settings) -> dict[str, Any]:
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"queue": {"format": settings.log_format}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "queue",
                "level": level,
            }
        },
        "root": {"handlers": ["console"], "level": logging.WARNING},
        "loggers": {
            APP_LOGGER: {"level": level},
        },
    }


def configure_logging(settings: Settings) -> logging.Logger:
    """Apply the console configuration and return the ``nextqueue`` logger.

    Engine, announcer and route modules log under ``nextqueue.*`` and inherit
    the configured level; third-party loggers stay at WARNING.
    """

    dictConfig(build_logging_config(settings))
    return logging.getLogger(APP_LOGGER)


def build_tracer_provider(settings: Settings, exporter: SpanExporter | None = None) -> TracerProvider:
    """Create a provider tagged with the service name and batching to ``exporter``.

    Without an explicit exporter the OTLP HTTP exporter is configured from the
    ``otel_exporter_otlp_*`` settings.
    """

    provider = TracerProvider(
        resource=Resource.create(
            {"service.name": settings.otel_service_name, "deployment.environment": settings.environment}
        )
    )
    if exporter is None:
        options: dict[str, Any] = {}
        if settings.otel_exporter_otlp_endpoint:
            options["endpoint"] = settings.otel_exporter_otlp_endpoint
        headers = _parse_headers(settings.otel_exporter_otlp_headers)
        if headers:
            options["headers"] = headers
        exporter = OTLPSpanExporter(**options)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install the global provider once when tracing is enabled."""

    global _active_provider

    if not settings.otel_enabled or _active_provider is not None:
        return None
    _active_provider = build_tracer_provider(settings)
    trace.set_tracer_provider(_active_provider)
    return _active_provider


def get_tracer(provider: TracerProvider | None = None) -> Tracer:
    """Tracer used for queue operation spans."""

    if provider is not None:
        return provider.get_tracer(ENGINE_TRACER)
    return trace.get_tracer(ENGINE_TRACER)


def shutdown_tracer(provider: TracerProvider | None) -> None:
    """Flush and shut down ``provider``; ``None`` is ignored."""

    global _active_provider

    if provider is None:
        return
    provider.shutdown()
    if provider is _active_provider:
        _active_provider = None
