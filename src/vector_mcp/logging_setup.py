"""Loguru configuration shared by every entry point."""

import sys
from typing import Optional

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> | <level>{message}</level>"
)


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Route logs to stderr, and optionally to a rotating file.

    Stdout is reserved for the stdio transport, so it is never a sink.

    Args:
        level: Minimum level for the console sink
        log_file: Optional path for a DEBUG-level rotating file sink
    """
    logger.remove()  # Remove default handler

    logger.add(sys.stderr, format=LOG_FORMAT, level=level.upper())

    if log_file:
        logger.add(
            log_file,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            level="DEBUG",
        )
