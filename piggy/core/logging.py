"""Logging setup: JSON or text lines tagged with the current request id.

Services attach context through `extra=`:

    logger.info(f"Opened position {position.id}", extra={"user_id": user_id})

The JSON formatter emits those keys as top-level fields; the text
formatter appends them as `key=value` pairs.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from .config import settings


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes every LogRecord carries; anything else came in via `extra=`
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "env": settings.environment,
        }
        request_id = request_id_var.get()
        if request_id:
            entry["request_id"] = request_id
        entry.update(_extra_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            entry["source"] = f"{record.pathname}:{record.lineno}"
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Readable single-line output for local runs."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S")
        request_id = request_id_var.get()
        line = f"{stamp} {record.levelname:<7} {record.name}"
        if request_id:
            line += f" [{request_id[:8]}]"
        line += f" {record.getMessage()}"
        extras = _extra_fields(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class RedactingFilter(logging.Filter):
    """Mask database credentials and email addresses in log messages."""

    _URL_PASSWORD = re.compile(r"(\w[\w+]*://[^:/\s]+:)[^@\s]+(@)")
    _EMAIL = re.compile(r"\b([\w.+-])[\w.+-]*(@[\w-]+\.[\w.-]+)\b")

    def filter(self, record: logging.LogRecord) -> bool:
        text = record.getMessage()
        masked = self._URL_PASSWORD.sub(r"\1***\2", text)
        masked = self._EMAIL.sub(r"\1***\2", masked)
        if masked != text:
            record.msg = masked
            record.args = None
        return True


def setup_logging() -> None:
    """Route all logging to stdout with the configured format and level."""
    level = getattr(logging, settings.log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        StructuredFormatter() if settings.log_format == "json" else TextFormatter()
    )
    handler.addFilter(RedactingFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # RequestLoggingMiddleware already writes one line per request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.db_echo else logging.WARNING
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"piggy.{name}")
