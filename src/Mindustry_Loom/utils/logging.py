"""Logging and tracing setup for pipeline runs.

Key Responsibilities:
    - Render stdlib log records as scrubbed single-line JSON on stderr
    - Point structlog at the same stream with the same scrubbing rules
    - Install an OpenTelemetry tracer provider when an exporter is configured
    - Carry a per-run correlation id through both logging systems

Side Effects:
    - Replaces root logging handlers and the global structlog configuration
    - May replace the global OpenTelemetry tracer provider

Thread Safety:
    - Configure once at process start; correlation ids live in ``contextvars``
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable
from contextvars import ContextVar, Token
from typing import Any

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from Mindustry_Loom.config.settings import LoggingSettings, TelemetrySettings

_correlation_id: ContextVar[str | None] = ContextVar("mindustry_loom_run_id", default=None)

_MASK = "***"

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def _mask(value: Any, sensitive: frozenset[str]) -> Any:
    if isinstance(value, dict):
        return {key: _MASK if key.lower() in sensitive else _mask(item, sensitive) for key, item in value.items()}
    if isinstance(value, list):
        return [_mask(item, sensitive) for item in value]
    return value


def _sensitive(fields: Iterable[str] | None) -> frozenset[str]:
    return frozenset(name.lower() for name in fields or ())


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with configured field names masked."""

    def __init__(self, *, scrub_fields: Iterable[str] | None = None) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")
        self._sensitive = _sensitive(scrub_fields)

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        run_id = _correlation_id.get()
        if run_id:
            payload["correlation_id"] = run_id
        extras = {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS}
        payload.update(_mask(extras, self._sensitive))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True, default=str)


def _structlog_masker(scrub_fields: Iterable[str] | None):
    sensitive = _sensitive(scrub_fields)

    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        run_id = _correlation_id.get()
        if run_id:
            event_dict.setdefault("correlation_id", run_id)
        return _mask(event_dict, sensitive)

    return processor


def _level_number(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        value = logging.getLevelName(level.upper())
        if isinstance(value, int):
            return value
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    settings: LoggingSettings | None = None,
) -> None:
    """Route stdlib logging and structlog to stderr as JSON.

    ``settings`` wins over ``level`` when both are given. Handlers installed by
    pytest's log capture are kept so ``caplog`` keeps working.
    """
    scrub_fields: Iterable[str] | None = None
    if settings is not None:
        level, scrub_fields = settings.level, settings.scrub_fields
    level_value = _level_number(level)
    formatter = JsonFormatter(scrub_fields=scrub_fields)

    kept = [
        handler
        for handler in logging.getLogger().handlers
        if type(handler).__module__.startswith("_pytest.")
    ]
    for handler in kept:
        handler.setFormatter(formatter)
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    logging.basicConfig(level=level_value, handlers=[*kept, stderr_handler], force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _structlog_masker(scrub_fields),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True, default=str),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def configure_tracing(service_name: str, telemetry: TelemetrySettings) -> None:
    """Install a tracer provider for ``console`` or ``otlp``; ``none`` is a no-op."""
    exporter_name = telemetry.exporter.lower()
    if exporter_name == "none":
        return
    exporter: SpanExporter
    if exporter_name == "otlp":
        exporter = OTLPSpanExporter(endpoint=telemetry.endpoint) if telemetry.endpoint else OTLPSpanExporter()
    else:
        exporter = ConsoleSpanExporter()
    provider = TracerProvider(
        resource=Resource(attributes={"service.name": service_name}),
        sampler=TraceIdRatioBased(telemetry.sample_ratio),
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)


def bind_correlation_id(value: str) -> Token[str | None]:
    """Tag every log line emitted in this context with ``value``."""
    token = _correlation_id.set(value)
    structlog.contextvars.bind_contextvars(correlation_id=value)
    return token


def reset_correlation_id(token: Token[str | None] | None) -> None:
    if token is not None:
        _correlation_id.reset(token)
    structlog.contextvars.unbind_contextvars("correlation_id")


def get_correlation_id() -> str | None:
    return _correlation_id.get()


__all__ = [
    "JsonFormatter",
    "bind_correlation_id",
    "configure_logging",
    "configure_tracing",
    "get_correlation_id",
    "reset_correlation_id",
]
