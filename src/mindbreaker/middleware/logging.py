"""Structured logging configuration with structlog."""

import logging

import structlog

from mindbreaker.config import Settings

# Chatty third-party loggers kept at WARNING unless debug is on
_NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "asyncio")


def _processors(settings: Settings) -> list[structlog.types.Processor]:
    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.log_format == "json":
        # Tracebacks become structured fields instead of one multi-line string
        return [*shared, structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [*shared, structlog.dev.ConsoleRenderer()]


def setup_logging(settings: Settings) -> None:
    """Configure structlog for JSON (production) or console (local dev) output."""
    structlog.configure(
        processors=_processors(settings),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if settings.debug else max(level, logging.WARNING))
