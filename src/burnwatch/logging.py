"""
Structured logging for burnwatch.

Every log event is one JSON object on stderr. Stdout belongs to command
output, so ``--format json`` stays parseable.
"""

import logging
import sys
from typing import TextIO

import structlog


def configure_logging(level: int | str = logging.INFO, stream: TextIO | None = None) -> None:
    """Route structlog through stdlib logging to ``stream`` (stderr by default)."""

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s", stream=stream or sys.stderr)
    logging.getLogger().setLevel(level)
