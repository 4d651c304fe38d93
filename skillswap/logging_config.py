"""Logging setup driven by LoggingSettings.

Emits JSON lines by default so logs can be shipped as-is; ``LOG_FORMAT=text``
switches to a human-readable layout for local runs.
"""
from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone

from .config import settings

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def build_logging_config(
    level: str | None = None,
    fmt: str | None = None,
    log_file: str | None = None,
) -> dict:
    """Build a dictConfig mapping from explicit values or LoggingSettings."""
    level = (level or settings.logging.level).upper()
    fmt = fmt or settings.logging.format
    log_file = log_file if log_file is not None else settings.logging.file

    formatter = "json" if fmt == "json" else "text"
    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter,
            "stream": "ext://sys.stderr",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": formatter,
            "filename": log_file,
            "encoding": "utf-8",
        }

    handler_names = list(handlers)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
            "text": {"format": TEXT_FORMAT},
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": handler_names},
        "loggers": {
            # uvicorn installs its own handlers; route them through ours
            "uvicorn": {"level": level, "handlers": handler_names, "propagate": False},
            "uvicorn.access": {"level": level, "handlers": handler_names, "propagate": False},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    }


def setup_logging(**overrides) -> None:
    """Configure process-wide logging once at startup."""
    logging.config.dictConfig(build_logging_config(**overrides))
