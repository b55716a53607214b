"""Logging setup for the Gen-Connect service."""

import logging

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging once at process start.

    Args:
        level: Level name such as "DEBUG" or "INFO".
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    # urllib3 logs every connection the email transport opens
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger(__name__).info("Logging initialized with level %s", level)
