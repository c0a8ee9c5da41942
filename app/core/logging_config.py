"""structlog setup for the validation pipeline.

Service modules log through ``get_logger``::

    from app.core.logging_config import get_logger
    logger = get_logger(__name__, batch_size=10)
    logger.info("batch_started", keys=3)

Events are rendered as one JSON object per line on stderr. The level filter is
applied by ``configure_structlog``, which ``configure_logging`` calls with the
level it resolved for stdlib logging, so both agree.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

_NOISY_HTTP_LOGGERS = ("httpx", "httpcore")


def configure_structlog(level: int = logging.INFO) -> None:
    """(Re)configure structlog to drop events below *level*."""
    for name in _NOISY_HTTP_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        cache_logger_on_first_use=False,
    )


def get_logger(name: str, **bound_values: Any) -> Any:
    """Return a JSON logger carrying *bound_values*.

    The logger is a lazy proxy: the level filter is looked up on each call, so
    module-level loggers follow a later ``configure_structlog``.
    """
    return structlog.get_logger(name, **bound_values)


# Usable before the application calls configure_logging
configure_structlog()
