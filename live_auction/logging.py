"""Logging helpers using structlog."""

from __future__ import annotations

import logging
import sys

import structlog


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Return a structlog logger, configuring the stack on first use."""

    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(name)


def configure_logging(level: str = "INFO", *, json_logs: bool = True) -> None:
    """Configure structlog and stdlib logging.

    ``json_logs=False`` swaps the JSON renderer for structlog's console renderer,
    which is easier to read when running the server locally.
    """

    level_name = level.upper()
    numeric_level = getattr(logging, level_name, logging.INFO)
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
        # A bound logger keeps the level filter active when it was bound.
        # Bind in constructors or call sites, not at import time.
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(level=numeric_level, format="%(message)s", stream=sys.stdout)
