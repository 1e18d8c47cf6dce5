"""
Logging configuration

One loguru logger for the whole service. Provider failures, fallbacks and
request summaries all go through `log`.
"""
import sys
from typing import Optional

from loguru import logger

from store_intelligence.config import Settings, get_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def setup_logger(settings: Optional[Settings] = None):
    """Replace the default sink with console (and optionally daily file) sinks"""
    settings = settings or get_settings()
    logger.remove()

    logger.add(sys.stdout, colorize=True, format=CONSOLE_FORMAT, level=settings.log_level.upper())

    if settings.log_to_file:
        # All signal and insight activity, rotated at midnight
        logger.add(
            f"{settings.log_dir}/store_intelligence_{{time:YYYY-MM-DD}}.log",
            rotation="00:00",
            retention="30 days",
            compression="zip",
            level="INFO",
        )
        # Fallbacks and unexpected failures only
        logger.add(
            f"{settings.log_dir}/errors_{{time:YYYY-MM-DD}}.log",
            rotation="00:00",
            retention="90 days",
            level="ERROR",
        )

    return logger


log = setup_logger()
