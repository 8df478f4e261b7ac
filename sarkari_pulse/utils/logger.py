"""
Sarkari Pulse — Logging Configuration
One shared console logger for the scraper pipeline, store and API.
"""

import logging
import os
import sys


def setup_logger(name: str = "sarkari-pulse", level: str | None = None) -> logging.Logger:
    """Create a configured logger with console output."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
        logger.setLevel(getattr(logging, level_name, logging.INFO))

        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


# Global logger instance
logger = setup_logger()
