"""Logging configuration helpers."""

from __future__ import annotations

import logging
import logging.config
from typing import Any

from .config import LoggingSettings

DIAGNOSTICS_LOGGER = "mail_exporter.export"


def _structured_formatter() -> dict[str, Any]:
    """Return a dictConfig fragment for structured JSON logs."""
    return {
        "format": "{asctime} {levelname} {name} {message}",
        "style": "{",
    }


def _plain_formatter() -> dict[str, Any]:
    """Return a dictConfig fragment for human readable logs."""
    return {
        "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
    }


def configure_logging(settings: LoggingSettings) -> None:
    """Configure application logging according to provided settings."""
    formatter = _structured_formatter() if settings.structured else _plain_formatter()

    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "level": settings.level,
        },
    }
    diagnostics_handlers: list[str] = []
    if settings.diagnostics_path is not None:
        # Export failures are appended to a plain text file across runs.
        handlers["diagnostics"] = {
            "class": "logging.FileHandler",
            "formatter": "default",
            "filename": str(settings.diagnostics_path),
            "mode": "a",
            "encoding": "utf-8",
            "delay": True,
            "level": "WARNING",
        }
        diagnostics_handlers.append("diagnostics")

    dict_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": formatter,
        },
        "handlers": handlers,
        "loggers": {
            DIAGNOSTICS_LOGGER: {
                "handlers": diagnostics_handlers,
                "propagate": True,
            },
        },
        "root": {
            "handlers": ["console"],
            "level": settings.level,
        },
    }

    logging.config.dictConfig(dict_config)


__all__ = ["DIAGNOSTICS_LOGGER", "configure_logging"]
