"""
structlog setup for the pipeline entry points.

Production runs emit one JSON object per line so scrape runs can be
followed in a log aggregator; development runs get coloured console
output. Context such as project_id or run_id can be bound once per
invocation and appears on every event logged inside it.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from signal_pipeline.config.settings import get_settings

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "openai", "asyncpg")


def setup_logging(level: str | None = None) -> None:
    """
    Install the structlog processor chain and route stdlib logging.

    Args:
        level: Override for the configured log level (e.g. "DEBUG")

    Usage:
        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Source scraped", source_id="...", items_found=3)
    """
    settings = get_settings()
    log_level = (level or settings.log_level).upper()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_production:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route stdlib loggers (used by repositories and clients) to stdout
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level),
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """Tag every later event in this context (request or CLI run)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop request or run context."""
    structlog.contextvars.clear_contextvars()
