"""
Structured logging setup (structlog).

Call setup_logging() once at process start (FastAPI lifespan or Celery
worker boot).  Everywhere else just use get_logger(__name__) and bind
context with logger.bind(job_id=..., label=...).
"""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(level: str = "INFO", json_logs: bool | None = None) -> None:
    """
    Configure stdlib logging + structlog processors.

    Args:
        level: Root log level name.
        json_logs: Force JSON output.  Defaults to console output in
                   development and JSON everywhere else.
    """
    if json_logs is None:
        from pdfbatch.core.config import settings
        json_logs = settings.APP_ENV != "development"

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
