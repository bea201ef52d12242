"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path

import structlog

from .config.loader import HOME_ENV_VAR
from .infra.redaction import redact_event

LOGGER_NAME = "model_watcher"

_LOGGING_INITIALISED = False

PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.add_log_level,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    # Secrets must be gone before any handler sees the event
    redact_event,
    structlog.stdlib.render_to_log_kwargs,
]


def _default_log_dir() -> Path:
    home = os.environ.get(HOME_ENV_VAR)
    root = Path(home).expanduser() if home else Path.cwd()
    return root / "logs"


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED
    log_dir = log_dir or _default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    error_log = log_dir / "error.log"
    watcher_log = log_dir / "watcher.log"

    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "plain": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "plain",
                    },
                    "watcher_file": {
                        "class": "logging.FileHandler",
                        "level": "INFO",
                        "filename": str(watcher_log),
                        "encoding": "utf-8",
                        "formatter": "plain",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "encoding": "utf-8",
                        "formatter": "plain",
                    },
                },
                "loggers": {
                    LOGGER_NAME: {
                        "handlers": ["console", "watcher_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        structlog.configure(
            processors=PROCESSORS,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger(LOGGER_NAME)


def get_logger(component: str) -> structlog.BoundLogger:
    """Return the application logger bound to a component name."""

    return structlog.get_logger(LOGGER_NAME).bind(component=component)


def source_logger(source_name: str) -> structlog.BoundLogger:
    """Return a logger bound to a specific catalog source."""

    return structlog.get_logger(f"{LOGGER_NAME}.source").bind(source=source_name)


__all__ = ["LOGGER_NAME", "PROCESSORS", "configure_logging", "get_logger", "source_logger"]
