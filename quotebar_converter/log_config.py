"""
Logging Setup
-------------
Root logger configuration for the CLI. Library modules only call
``logging.getLogger(__name__)``; nothing is configured on import.

- One stderr handler, replaced (never stacked) on repeated calls.
- ``level`` takes an int or a level name such as "DEBUG".
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: int | str = logging.INFO) -> logging.Handler:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    return handler
