"""
Structured logging configuration.
"""

from __future__ import annotations

import logging

import structlog

from unbias.core.config import settings

# Third-party loggers that are chatty below WARNING during extraction.
NOISY_LOGGERS = ("httpx", "httpcore", "readability.readability", "trafilatura")


def _resolve_level(level_name: str | None) -> int:
    name = (level_name or settings.effective_log_level).upper()
    return getattr(logging, name, logging.INFO)


def configure_logging(level_name: str | None = None, log_format: str | None = None) -> None:
    """
    Configure stdlib and structlog processors.

    The library never configures logging on import or per fetch; the hosting
    process (API server, worker, script) calls this once at start-up. Explicit
    arguments override `LOG_LEVEL` / `LOG_FORMAT` from settings.
    """
    level_value = _resolve_level(level_name)
    logging.basicConfig(
        level=level_value,
        format="%(message)s",
    )
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(level_value, logging.WARNING))

    renderer: structlog.types.Processor
    if (log_format or settings.LOG_FORMAT) == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
