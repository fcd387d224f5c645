"""Loguru sinks for the plan timeline engine.

Library modules log with keyword context, e.g.
logger.info("Regenerated group siblings", group_id=..., created_count=...).
Both sinks render that context after the message. Nothing is configured at
import time; the host application calls setup_logger() once.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> <dim>{extra}</dim>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message} {extra}"


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> int | None:
    """Replace loguru's sinks with a stderr sink and an optional file sink.

    Args:
        level: Minimum level for both sinks
        log_file: Path of a rotating, zip-compressed log file (stderr only if None)
        rotation: When to rotate the file (e.g., "10 MB", "1 day")
        retention: How long rotated files are kept (e.g., "7 days")

    Returns:
        Handler id of the file sink, or None without one
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    file_sink_id = None
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_sink_id = logger.add(
            log_path,
            format=FILE_FORMAT,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            backtrace=True,
            diagnose=False,
        )

    logger.info("Logger configured", log_level=level, log_file=log_file)
    return file_sink_id


def setup_logger_from_settings() -> int | None:
    """Configure logging from the LOG_LEVEL / LOG_FILE settings."""
    from plan_timeline.config.settings import settings

    return setup_logger(level=settings.log_level, log_file=settings.log_file)
