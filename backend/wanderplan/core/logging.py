from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict

from wanderplan.core.settings import settings

# attributes every LogRecord carries; anything else arrived through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


class EventFormatter(logging.Formatter):
    """Standard line format followed by the ``extra`` fields as key=value."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = [
            f"{key}={value}"
            for key, value in sorted(record.__dict__.items())
            if key not in _RECORD_ATTRS and not key.startswith("_")
        ]
        if not fields:
            return line
        return f"{line} | {' '.join(fields)}"


def _build_logging_config(log_dir: Path) -> Dict[str, Any]:
    def rotating(filename: str, level: str) -> Dict[str, Any]:
        return {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "events",
            "filename": str(log_dir / filename),
            "maxBytes": settings.log_max_bytes,
            "backupCount": settings.log_backup_count,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "events": {
                "()": EventFormatter,
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": settings.log_level,
                "formatter": "events",
            },
            "app_file": rotating("app.log", settings.log_level),
            "error_file": rotating("errors.log", "ERROR"),
        },
        "loggers": {
            # per-request client logs from httpx would drown the worker events
            "httpx": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
        "root": {
            "level": settings.log_level,
            "handlers": ["console", "app_file", "error_file"],
        },
    }


def setup_logging() -> None:
    """Configure logging once at application start."""

    log_dir = Path(settings.log_directory).resolve()
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(_build_logging_config(log_dir))


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or "wanderplan")
