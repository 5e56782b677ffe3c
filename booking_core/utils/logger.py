"""Process-wide logging for the allocation service.

Lines are pipe-separated (`event | key=value | ...`). The thread name is
included because bookings are handled on FastAPI's worker threads and
notifications on the `notify` pool, so one request can span two threads.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from booking_core.utils.config import get_settings


_LOGGER_INITIALIZED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install the stdout handler once, at `BOOKING_LOG_LEVEL` unless overridden."""

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    settings = get_settings()
    resolved_level = (level or settings.log_level).upper()

    logging.basicConfig(
        level=resolved_level,
        format=(
            "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
        ),
        stream=sys.stdout,
    )
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    """Module logger; the first call configures logging."""
    configure_logging()
    return logging.getLogger(name)
