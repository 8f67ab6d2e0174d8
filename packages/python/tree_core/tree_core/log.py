"""Loguru setup shared by the applications in this repo."""

from __future__ import annotations

import os
import sys
from typing import Optional

from loguru import logger


def configure_logging(level: Optional[str] = None) -> str:
    """Route loguru output to stderr at the requested (or environment) level."""

    resolved = (level or os.getenv("LOG_LEVEL") or os.getenv("LOGURU_LEVEL") or "INFO").upper()
    logger.remove()
    logger.add(sys.stderr, level=resolved)
    logger.debug("Logger configured at {level} level", level=resolved)
    return resolved
