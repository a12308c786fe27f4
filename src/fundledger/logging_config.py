"""Logging setup for fundledger.

Modules obtain loggers through ``get_logger`` so everything lives under the
``fundledger`` namespace. ``configure_logging`` installs one stderr handler,
either plain text or one JSON object per line.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

ROOT_LOGGER_NAME = "fundledger"

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class LogContext:
    """Context-variable holder for request-scoped log fields."""

    _actor: ContextVar[Optional[str]] = ContextVar("log_actor", default=None)
    _journal_id: ContextVar[Optional[str]] = ContextVar("log_journal_id", default=None)
    _operation: ContextVar[Optional[str]] = ContextVar("log_operation", default=None)

    _FIELD_NAMES = ("actor", "journal_id", "operation")

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Return all non-None context fields as a dict."""
        ctx: dict[str, str] = {}
        for name in cls._FIELD_NAMES:
            val = getattr(cls, f"_{name}").get()
            if val is not None:
                ctx[name] = val
        return ctx

    @classmethod
    def bind(cls, **kwargs: Any) -> "_LogContextManager":
        """Context manager that sets fields on entry and restores on exit."""
        return _LogContextManager(**kwargs)


class _LogContextManager:
    def __init__(self, **kwargs: Any):
        unknown = set(kwargs) - set(LogContext._FIELD_NAMES)
        if unknown:
            raise TypeError(f"Unknown log context fields: {', '.join(sorted(unknown))}")
        self._kwargs = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> type[LogContext]:
        for key, val in self._kwargs.items():
            if val is not None:
                var = getattr(LogContext, f"_{key}")
                self._tokens[key] = var.set(str(val))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        for key, token in self._tokens.items():
            getattr(LogContext, f"_{key}").reset(token)
        self._tokens.clear()


class _ContextFilter(logging.Filter):
    """Copy LogContext fields onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in LogContext.get_all().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _STDLIB_KEYS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default, sort_keys=True)


_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_handler: Optional[logging.Handler] = None


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the fundledger namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: str = "WARNING", json_format: bool = False) -> logging.Logger:
    """Install the fundledger log handler.

    Calling this again replaces the previously installed handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)
        json_format: Emit structured JSON lines instead of plain text

    Returns:
        The package root logger
    """
    global _handler

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level '{level}'")

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _handler is not None:
        root.removeHandler(_handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(_ContextFilter())
    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    root.addHandler(handler)
    root.setLevel(numeric_level)
    root.propagate = False
    _handler = handler
    return root


def reset_logging() -> None:
    """Remove the installed handler and restore default propagation."""
    global _handler

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _handler is not None:
        root.removeHandler(_handler)
        _handler = None
    root.setLevel(logging.NOTSET)
    root.propagate = True
