"""Logging setup shared by the API and the maintenance scripts."""

import logging

from usermanager.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the package logger."""
    logger = logging.getLogger("usermanager")
    logger.setLevel((level or settings.log_level).upper())
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
