"""
Logging setup.

Configures loguru sinks for the service.
"""

import sys

from loguru import logger

from refchain.config.settings import Settings


def setup_logging(settings: Settings) -> None:
    """Configure stderr sink and optional rotating file sink."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
            encoding="utf-8",
        )

    logger.info("Referral core logging configured")
