import json
import logging

import structlog
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider

from Mindustry_Loom.config import LoggingSettings, TelemetrySettings
from Mindustry_Loom.utils.logging import (
    JsonFormatter,
    bind_correlation_id,
    configure_logging,
    configure_tracing,
    get_correlation_id,
    reset_correlation_id,
)


def test_configure_logging_sets_handler(caplog):
    configure_logging(level=logging.DEBUG)
    logger = logging.getLogger("test")
    logger.info("hello", extra={"extra": {"key": "value"}})
    assert logger.name == "test"


def test_configure_tracing_none_keeps_provider():
    before = trace.get_tracer_provider()
    configure_tracing("service", TelemetrySettings(exporter="none"))
    assert trace.get_tracer_provider() is before


def test_configure_tracing_console_exporter():
    configure_tracing("service", TelemetrySettings(exporter="console"))
    assert isinstance(trace.get_tracer_provider(), TracerProvider)


def test_structured_logging_includes_correlation_id(caplog):
    settings = LoggingSettings(scrub_fields=["token"])
    configure_logging(settings=settings)
    token = bind_correlation_id("corr-123")
    logger = logging.getLogger("observability")
    logger.info("processed", extra={"token": "super-secret", "detail": "ok"})
    reset_correlation_id(token)
    assert '"correlation_id": "corr-123"' in caplog.text
    assert '"token": "***"' in caplog.text


def test_correlation_id_round_trip():
    assert get_correlation_id() is None
    token = bind_correlation_id("run-1")
    assert get_correlation_id() == "run-1"
    reset_correlation_id(token)
    assert get_correlation_id() is None


def test_json_formatter_scrubs_nested_fields():
    formatter = JsonFormatter(scrub_fields=["password"])
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    record.payload = {"password": "hunter2", "user": "a"}
    output = formatter.format(record)
    assert '"password": "***"' in output
    assert '"user": "a"' in output


def test_structlog_events_render_as_scrubbed_json(capsys):
    configure_logging(settings=LoggingSettings(level="INFO", scrub_fields=["token"]))
    token = bind_correlation_id("run-7")
    try:
        structlog.get_logger("Mindustry_Loom.pipeline").info("pipeline.run.start", version="7.0", token="secret")
    finally:
        reset_correlation_id(token)
    line = capsys.readouterr().err.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["event"] == "pipeline.run.start"
    assert payload["level"] == "info"
    assert payload["correlation_id"] == "run-7"
    assert payload["token"] == "***"
