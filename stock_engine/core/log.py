"""Logger setup shared by the engine modules."""
from __future__ import annotations

import logging
import os

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a named logger with a single stream handler attached.

    The level comes from ``STOCK_ENGINE_LOG_LEVEL`` (default INFO).
    """
    logger = logging.getLogger(f"stock_engine.{name}")
    if not logger.handlers:
        _h = logging.StreamHandler()
        _h.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(_h)
    logger.setLevel(os.getenv("STOCK_ENGINE_LOG_LEVEL", "INFO").strip().upper() or "INFO")
    return logger


def mask_secret(value: str | None) -> str | None:
    if not value:
        return None
    return f"...{value[-4:]}" if len(value) >= 4 else "..."
