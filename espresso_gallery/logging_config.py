"""Logging setup for the API server and CLI.

Production writes one JSON object per line to stderr and to rotating files;
development uses a short plain-text format. Every JSON line carries a
``category`` derived from the logger name, and the OpenTelemetry trace id
when a span is recording.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

from espresso_gallery.tracing import get_current_trace_id

if TYPE_CHECKING:
    from typing import TextIO

# Longest matching prefix wins, so routes.gallery beats routes
CATEGORIES: dict[str, str] = {
    "espresso_gallery.auth": "auth",
    "espresso_gallery.media": "media",
    "espresso_gallery.gallery": "gallery",
    "espresso_gallery.routes.gallery": "gallery",
    "espresso_gallery.routes.content": "content",
    "espresso_gallery.routes.subscriptions": "content",
    "espresso_gallery.db": "db",
    "espresso_gallery.main": "http",
    "espresso_gallery.routes": "http",
    "uvicorn": "http",
    "fastapi": "http",
    "sqlalchemy": "db",
    "alembic": "db",
}
DEFAULT_CATEGORY = "system"

# Attributes every LogRecord has; anything else arrived through ``extra=``
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
    "taskName",
    "user_id",
    "trace_id",
}

NOISY_LOGGERS = (
    "watchfiles",
    "httpcore",
    "httpx",
    "PIL",
    "multipart",
    "aiosqlite",
    "sqlalchemy.engine",
)

PLAIN_FORMAT = "%(asctime)s %(levelname)5s [%(name)s] %(message)s"
MAX_LOG_BYTES = 50 * 1024 * 1024


def category_for(logger_name: str) -> str:
    best = ""
    for prefix in CATEGORIES:
        if len(prefix) > len(best) and (
            logger_name == prefix or logger_name.startswith(prefix + ".")
        ):
            best = prefix
    return CATEGORIES.get(best, DEFAULT_CATEGORY)


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "category": category_for(record.name),
            "logger": record.name,
            "message": record.getMessage(),
        }

        user_id = getattr(record, "user_id", None)
        if user_id is not None:
            entry["user_id"] = user_id

        trace_id = getattr(record, "trace_id", None) or get_current_trace_id()
        if trace_id:
            entry["trace_id"] = trace_id

        extra = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            entry["extra"] = extra

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry)


class ErrorFilter(logging.Filter):
    """Pass ERROR and above."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def _file_handler(path: str, backups: int) -> RotatingFileHandler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path, maxBytes=MAX_LOG_BYTES, backupCount=backups, encoding="utf-8"
    )


def configure_logging(
    *,
    json_format: bool = True,
    log_level: int = logging.INFO,
    log_file: str | None = None,
    error_log_file: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Replace the root logger's handlers.

    ``error_log_file`` receives only ERROR and above. ``stream`` defaults to
    stderr.
    """
    formatter = (
        StructuredFormatter() if json_format else logging.Formatter(PLAIN_FORMAT, "%H:%M:%S")
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if log_file:
        handlers.append(_file_handler(log_file, backups=7))
    if error_log_file:
        error_handler = _file_handler(error_log_file, backups=14)
        error_handler.addFilter(ErrorFilter())
        handlers.append(error_handler)

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
    root.setLevel(log_level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_production_logging() -> None:
    from espresso_gallery.config import settings

    configure_logging(
        json_format=True,
        log_file=settings.log_file or "data/logs/app.log",
        error_log_file=settings.error_log_file or "data/logs/error.log",
    )


def setup_dev_logging() -> None:
    """Plain text on stderr unless LOG_JSON=true."""
    from espresso_gallery.config import settings

    configure_logging(json_format=settings.log_json, log_file=settings.log_file)
