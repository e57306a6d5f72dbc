"""Logging for the Orders domain.

Operations log through structlog with key/value context. Records go to
stdout and to a rotating ``orders.log``; production and staging render JSON
lines, everything else renders for humans with rich tracebacks.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

import structlog

from orders.utils.config import get_environment, get_log_dir

_LEVEL_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

_JSON_ENVIRONMENTS = ("production", "staging")


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", _LEVEL_BY_ENV.get(get_environment(), "INFO"))


def _handlers(level: str) -> list[logging.Handler]:
    log_dir = Path(get_log_dir())
    log_dir.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    rotating_file = logging.handlers.RotatingFileHandler(
        filename=log_dir / "orders.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    for handler in (console, rotating_file):
        handler.setLevel(level)
    return [console, rotating_file]


def _rendering() -> list:
    if get_environment() in _JSON_ENVIRONMENTS:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [
        structlog.dev.ConsoleRenderer(
            exception_formatter=structlog.dev.RichTracebackFormatter(max_frames=2),
        )
    ]


def configure_logging() -> None:
    """Route stdlib and structlog output through the same handlers."""
    level = get_log_level()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = _handlers(level)

    # Protean logs every unit of work at INFO
    logging.getLogger("protean").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *_rendering(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
