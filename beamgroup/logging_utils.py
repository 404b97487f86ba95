"""Logging helpers: measure/stack context injection and JSON formatting."""

from __future__ import annotations

import contextvars
import json
import logging
import os
from datetime import datetime, timezone

DEFAULT_LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(filename)s:%(lineno)d:%(funcName)s "
    "stack_id=%(stack_id)s measure_id=%(measure_id)s %(message)s"
)

_STANDARD_LOG_RECORD_KEYS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
)

_stack_id = contextvars.ContextVar("log_stack_id", default="-")
_measure_id = contextvars.ContextVar("log_measure_id", default="-")


def set_log_context(*, stack_id: int | None = None, measure_id: int | None = None) -> None:
    """Set context variables for log enrichment."""
    if stack_id is not None:
        _stack_id.set(str(stack_id))
    if measure_id is not None:
        _measure_id.set(str(measure_id))


def clear_log_context() -> None:
    """Reset log context variables to their default values."""
    _stack_id.set("-")
    _measure_id.set("-")


class LoggingContextFilter(logging.Filter):
    """Inject stack/measure IDs into each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.stack_id = _stack_id.get()
        record.measure_id = _measure_id.get()
        return True


class JsonFormatter(logging.Formatter):
    """Format log records as JSON for structured logging sinks."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
            timespec="milliseconds"
        )
        payload = {
            "timestamp": timestamp,
            "level": record.levelname,
            "logger": record.name,
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
            "message": record.getMessage(),
            "stack_id": getattr(record, "stack_id", "-"),
            "measure_id": getattr(record, "measure_id", "-"),
        }
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_LOG_RECORD_KEYS and key not in payload
        }
        if extras:
            payload.update(extras)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _use_json_logs() -> bool:
    """Return True when environment config requests JSON logs."""
    return os.getenv("LOG_FORMAT", "").lower() == "json" or os.getenv(
        "LOG_JSON", ""
    ).lower() in {"1", "true", "yes"}


def build_formatter(json_logs: bool | None = None) -> logging.Formatter:
    """Build the active log formatter, JSON when requested or configured."""
    if json_logs is None:
        json_logs = _use_json_logs()
    if json_logs:
        return JsonFormatter()
    return logging.Formatter(DEFAULT_LOG_FORMAT)


def attach_context_filter(handler: logging.Handler) -> None:
    """Ensure a handler includes the logging context filter."""
    if not any(isinstance(f, LoggingContextFilter) for f in handler.filters):
        handler.addFilter(LoggingContextFilter())


def configure_logging(level: str | int | None = None, json_logs: bool | None = None) -> None:
    """
    Configure the root logger for command line runs.

    The level defaults to ``BEAMGROUP_LOG_LEVEL`` (or WARNING); JSON output is
    used when ``json_logs`` is set or when ``LOG_FORMAT=json`` / ``LOG_JSON=1``.
    """
    if level is None:
        level = os.getenv("BEAMGROUP_LOG_LEVEL", "WARNING")
    if isinstance(level, str):
        level = level.upper()

    root = logging.getLogger()
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    root.setLevel(level)

    formatter = build_formatter(json_logs)
    for handler in root.handlers:
        handler.setFormatter(formatter)
        attach_context_filter(handler)
