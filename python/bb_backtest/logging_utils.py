"""Loguru configuration for command-line use.

Library modules only call ``logger``; sinks are configured here, by scripts.
"""

from __future__ import annotations

import os
import sys

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function} | {message}"


def setup_logging(*, force: bool = False, level: str | None = None) -> None:
    """Idempotent stderr sink. ``LOG_LEVEL`` is used when ``level`` is not given."""
    if not force and getattr(setup_logging, "_configured", False):
        return

    logger.remove()
    log_level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logger.add(sys.stderr, level=log_level, format=_LOG_FORMAT, backtrace=False, diagnose=False)
    setup_logging._configured = True  # type: ignore[attr-defined]
