from __future__ import annotations

import logging
from logging import Logger

from .config import get_settings

# Libraries that log every request or job run at INFO
_CHATTY_LOGGERS = ("httpx", "httpcore", "apscheduler.executors", "aiogram.event")


def configure_logging(level: int | None = None) -> Logger:
    """
    Configure root logging for the worker and any process using the services.

    DEBUG in the `local` environment, INFO elsewhere, unless `level` is given.
    Request-level chatter from httpx and APScheduler is held at WARNING
    outside of `local`.
    """

    settings = get_settings()
    if level is None:
        level = logging.DEBUG if settings.is_debug else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    if not settings.is_debug:
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger("gymhub")
    logger.setLevel(level)
    return logger
