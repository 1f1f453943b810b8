"""
Structured logging utilities for overtime-sync.

Centralizes logging configuration so the CLI, the sync orchestrator, and the
remote store client log consistently. Standard library logging with a
human-readable formatter by default and an optional JSON formatter for
structured logs (useful when the poller runs unattended and its output is
shipped somewhere).

Every record passes through a context filter that stamps static fields (the
deployment environment, the project key) on it, so logs from several devices
can be told apart once collected.

Usage:
    from overtime_sync.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=True, context={"app_env": "prod"})
    log = get_logger(__name__)
    log.info("[SYNC COMPLETE]", extra={"records": 12})
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra"}

# Chatty third-party loggers; the poller would flood the console at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore")


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as a single JSON line."""
    payload: Dict[str, Any] = {
        "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
            timespec="milliseconds"
        ),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    for key, value in vars(record).items():
        if key not in _RESERVED_ATTRS and not key.startswith("_"):
            payload[key] = value
    # Older call sites pass a nested dict as extra={"extra": {...}}.
    if isinstance(getattr(record, "extra", None), dict):
        payload.update(record.extra)
    return json.dumps(payload, default=str, ensure_ascii=False)


class JsonFormatter(logging.Formatter):
    """JSON-lines formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


class ContextFilter(logging.Filter):
    """
    Attach static fields to every record passing through a handler.

    Fields already set on the record (through ``extra=``) are left alone.
    """

    def __init__(self, fields: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__()
        self.fields = dict(fields or {})

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.fields.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    force: bool = True,
    context: Optional[Mapping[str, Any]] = None,
) -> None:
    """
    Configure root logging.

    Parameters
    ----------
    level : str
        Logging level name (e.g., "DEBUG", "INFO", "WARNING").
    json_logs : bool
        Whether to emit logs as JSON. If False, uses a concise human formatter.
    force : bool
        Whether to override an existing root configuration. With False, a root
        logger that already has handlers (e.g. set up by an embedding
        application) is left untouched.
    context : Mapping | None
        Static fields stamped on every record (visible in JSON output).
    """
    root = logging.getLogger()
    if not force and root.handlers:
        return

    formatter_name = "json" if json_logs else "console"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "context": {"()": ContextFilter, "fields": dict(context or {})},
            },
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter_name,
                    "filters": ["context"],
                    "level": level,
                    "stream": "ext://sys.stderr",
                }
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
            "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with the given name. If name is None, returns the root logger.
    """
    return logging.getLogger(name)


__all__ = ["ContextFilter", "JsonFormatter", "configure_logging", "get_logger"]
