"""
Structured logging setup.

Services log events through `structlog.get_logger(__name__)`; this module
picks the renderer and level once at startup.
"""

import logging
import os

import structlog


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure structlog for the process.

    Args:
        level: Log level name (default: TMS_LOG_LEVEL or INFO)
        fmt: "json" or "console" (default: TMS_LOG_FORMAT or console)
    """
    level_name = (level or os.getenv("TMS_LOG_LEVEL", "INFO")).upper()
    fmt = (fmt or os.getenv("TMS_LOG_FORMAT", "console")).lower()

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level_name, logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )
