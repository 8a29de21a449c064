"""
Logging setup - one stream handler for the whole "epiciot" logger tree.

Every module gets its logger with logging.getLogger("epiciot.<area>"),
so a single call to configure_logging() at startup is enough.
"""

import logging
import sys

from app.core.config import settings

ROOT_LOGGER_NAME = "epiciot"


def configure_logging(level: str | None = None) -> logging.Logger:
    """
    Attach a stdout handler to the "epiciot" logger (idempotent).

    Args:
        level: Log level name; defaults to settings.LOG_LEVEL

    Returns:
        The configured root application logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))

    # Create console handler if not exists
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
