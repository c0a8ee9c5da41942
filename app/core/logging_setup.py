from __future__ import annotations

import logging
import os
import sys

from loguru import logger

from app.core.logging_config import configure_structlog


def configure_logging(*, production: bool) -> str:
    """Configure log levels for both stdlib `logging` and Loguru.

    Defaults to INFO in production, DEBUG otherwise. Override via `LOG_LEVEL`.
    """

    level_name = (os.getenv("LOG_LEVEL") or ("INFO" if production else "DEBUG")).upper()
    level_value = logging.getLevelName(level_name)
    if not isinstance(level_value, int):
        level_name, level_value = "INFO", logging.INFO

    # Standard library logging (FastAPI/Uvicorn/SQLAlchemy)
    logging.getLogger().setLevel(level_value)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(level_value)
    logging.getLogger("sqlalchemy.engine").setLevel(
        max(level_value, logging.WARNING)
    )

    # structlog (service and client modules)
    configure_structlog(level_value)

    # Loguru (used by the command-line client)
    logger.remove()
    logger.add(
        sys.stderr,
        level=level_name,
        backtrace=False,
        diagnose=False,
    )

    return level_name
