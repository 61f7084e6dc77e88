"""
Process-wide logging setup, run once by the application lifespan and by
the maintenance scripts.
"""

import logging
from typing import Optional

from espacestage.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Chatty at INFO/DEBUG and not useful next to our own request logs
QUIET_LOGGERS = ("pymongo", "passlib", "multipart", "python_multipart", "httpx")

_handler: Optional[logging.Handler] = None


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Attach one stream handler to the root logger at the configured level.

    Calling it again only re-applies the level, so tests and scripts that
    build several apps do not stack handlers.
    """
    global _handler
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(_handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
