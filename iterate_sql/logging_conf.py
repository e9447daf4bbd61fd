"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path

import structlog

LOG_FILE_ENV = "ITERATE_SQL_LOG_FILE"
LOGGER_NAME = "iterate_sql"

_LOGGING_INITIALISED = False

# Shared by package loggers and configure_logging; JSON rendering happens in the handlers
PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.filter_by_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.add_log_level,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
]

# Silent until an application attaches handlers
logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(**initial_values: object) -> structlog.stdlib.BoundLogger:
    """Return a stdlib-backed package logger independent of global structlog config."""

    return structlog.wrap_logger(
        logging.getLogger(LOGGER_NAME),
        processors=PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
    ).bind(**initial_values)


def _log_file() -> Path | None:
    value = os.environ.get(LOG_FILE_ENV)
    if not value:
        return None
    path = Path(value).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def configure_logging(verbose: bool = False) -> structlog.stdlib.BoundLogger:
    """Configure structlog + stdlib handlers and return the package logger."""

    global _LOGGING_INITIALISED

    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "WARNING"
        handlers: dict[str, dict[str, object]] = {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "plain",
                "stream": "ext://sys.stderr",
            },
        }
        log_file = _log_file()
        if log_file is not None:
            handlers["file"] = {
                "class": "logging.FileHandler",
                "level": "INFO",
                "filename": str(log_file),
                "formatter": "plain",
                "encoding": "utf-8",
            }
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
                "handlers": handlers,
                "loggers": {
                    LOGGER_NAME: {
                        "handlers": list(handlers),
                        "level": "DEBUG" if verbose else "INFO",
                        "propagate": False,
                    },
                },
            }
        )

        structlog.configure(
            processors=PROCESSORS,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return get_logger()


__all__ = ["LOG_FILE_ENV", "LOGGER_NAME", "PROCESSORS", "configure_logging", "get_logger"]
