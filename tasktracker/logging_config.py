"""Process-wide logging setup."""

from __future__ import annotations

import logging

from tasktracker.config import Settings


LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug and not settings.is_production else settings.log_level
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("tasktracker").setLevel(level)
