"""
Structured Logging for Session and Query Operations

Provides:
- JSON output carrying scoped fields (node, query, page) set through
  log_context() and per-record keyword fields
- Redaction of credential material before anything is rendered:
  fields named like a password or secret are blanked, fields named like
  a token are cut down to the token hint, LogonToken values anywhere
  are shown by hint
- Log level parsing for configuration values

Module code logs through plain ``logging.getLogger(__name__)`` loggers;
this module only decides how those records are rendered.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Final, Optional, TextIO

from boetools.core.types import LogonToken, token_hint

REDACTED: Final[str] = "[REDACTED]"

_SECRET_MARKERS: Final = ("password", "secret")
_TOKEN_MARKER: Final = "token"


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def parse(cls, name: str) -> LogLevel:
        """Level by name, falling back to INFO for unknown names."""
        return cls.__members__.get(name.strip().upper(), cls.INFO)


_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename",
    "funcName", "levelname", "levelno", "lineno",
    "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info",
    "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message", "asctime",
})


def redact(key: str, value: Any) -> Any:
    """
    Log-safe rendition of one field.

    Nested mappings (such as ``BOEToolsError.to_dict()``) are walked so
    that their own keys are checked too.
    """
    lowered = key.lower()
    if any(marker in lowered for marker in _SECRET_MARKERS):
        return REDACTED
    if isinstance(value, LogonToken):
        return value.hint
    if isinstance(value, dict):
        return {k: redact(str(k), v) for k, v in value.items()}
    if _TOKEN_MARKER in lowered and isinstance(value, str):
        return token_hint(value)
    return value


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record: scoped context, then record fields,
    each passed through redact().
    """

    def format(self, record: logging.LogRecord) -> str:
        fields = dict(_log_context.get())
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                fields[key] = value

        data: dict[str, Any] = {
            "@timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        data.update((key, redact(key, value)) for key, value in fields.items())

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)


class StructuredLogger:
    """
    Logger wrapper taking record fields as keyword arguments.

    Usage:
        log = StructuredLogger("boetools.query.engine")
        log.debug("Fetched page", page=3, of=7)
    """

    __slots__ = ("_logger",)

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)

    def debug(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.ERROR, message, fields)

    def _log(self, level: LogLevel, message: str, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level.value):
            return
        exc_info = fields.pop("exc_info", None)
        self._logger.log(level.value, message, extra=fields, exc_info=exc_info)


class _LogContext:
    """Context manager for adding fields to all logs."""

    __slots__ = ("_fields", "_token")

    def __init__(self, fields: dict[str, Any]) -> None:
        self._fields = fields
        self._token = None

    def __enter__(self) -> _LogContext:
        self._token = _log_context.set({**_log_context.get(), **self._fields})
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token:
            _log_context.reset(self._token)


def log_context(**fields: Any) -> _LogContext:
    """
    Scope fields onto every record emitted inside the block.

    Usage:
        with log_context(node="cms1:6400"):
            logger.debug("Attempting logon")
    """
    return _LogContext(fields)


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Minimum log level
        json_output: Use JsonFormatter; otherwise a one-line text format
        stream: Output stream (default: stderr)
    """
    root = logging.getLogger()
    root.setLevel(level.value)
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level.value)

    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        ))

    root.addHandler(handler)

    # redis-py connection chatter
    logging.getLogger("redis").setLevel(logging.WARNING)
