# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging for CampusIQ.

Development gets colored console lines, every other environment gets one
JSON object per line. Most modules log through
``logging.getLogger(__name__)``; the mutation boundary uses the structlog
logger from ``get_logger`` and tags each call with ``bind_context``.

Example:
    >>> setup_logging(get_settings())
    >>> logger = get_logger(__name__)
    >>> logger.info("exam_created", exam_id="e-1", actor_id="u-9")
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from campusiq.core.config.settings import Settings

QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "redis", "asyncio")


def _renderers(settings: "Settings") -> list[Processor]:
    if settings.is_development or settings.debug:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def setup_logging(settings: "Settings") -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        settings: Supplies ``log_level``, ``environment`` and ``debug``.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            *_renderers(settings),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("campusiq").setLevel(level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Attach key-value pairs to every structlog record in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)
