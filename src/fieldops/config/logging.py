"""Logging setup for the service."""

import logging
import sys

from .settings import Settings


NOISY_LOGGERS = ("aiohttp.access", "sqlalchemy.engine")


def configure_logging(settings: Settings) -> None:
    """Configure root logging once at startup.

    Args:
        settings: Application settings providing ``log_level`` and ``service_name``
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=f"%(asctime)s - {settings.service_name} - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
