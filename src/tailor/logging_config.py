from __future__ import annotations

import logging

from tailor.config import get_settings


_LOG_CONFIGURED = False

# Client libraries that log every provider request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging() -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    if level > logging.DEBUG:
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    _LOG_CONFIGURED = True
