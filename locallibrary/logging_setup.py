"""Logger factory honoring ``LOG_LEVEL`` from :mod:`locallibrary.config`."""
from __future__ import annotations

import logging
import threading

from locallibrary import config

_LOCK = threading.Lock()
_FORMAT = "[locallibrary] %(asctime)s %(levelname)s %(name)s %(message)s"


def get_logger(name: str = "locallibrary") -> logging.Logger:
    logger = logging.getLogger(name)
    if getattr(logger, "_locallibrary_configured", False):
        return logger
    with _LOCK:
        if getattr(logger, "_locallibrary_configured", False):
            return logger
        level = getattr(logging, config.log_level_name(), logging.INFO)
        logger.setLevel(level)
        if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(_FORMAT))
            logger.addHandler(handler)
        logger.propagate = False
        logger._locallibrary_configured = True  # type: ignore[attr-defined]
        return logger


__all__ = ["get_logger"]
