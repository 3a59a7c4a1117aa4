"""
Logging configuration for rowid-bisect

Provides console and JSON-formatted logging with contextual fields so the
range events of a run (new, scanning, ok, broken, broken_row, statistics)
can be read by people or shipped to a log pipeline.

Usage:
    from utils.logging import setup_logging, get_logger

    # Setup logging (call once at application startup)
    setup_logging(level="INFO", json_format=True)

    # Get logger for your module
    logger = get_logger(__name__)

    # Log with context
    logger.info("Range resolved", extra={
        "min_row_id": 100,
        "max_row_id": 200,
        "elapsed_seconds": 0.42,
    })
"""

from .config import get_logger, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter

__all__ = [
    "setup_logging",
    "get_logger",
    "shutdown_logging",
    "JSONFormatter",
    "ConsoleFormatter",
]
