"""
Logging setup.

One stdout handler on the package logger. Modules log through
logging.getLogger(__name__) so every record lands here.
"""

import logging
import sys

from daily_ledger.config import get_settings

LOGGER_NAME = "daily_ledger"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach the console handler to the package logger (idempotent)."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level or get_settings().LOG_LEVEL)

    # Clear any handlers from a previous call
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s in %(module)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    return logger
