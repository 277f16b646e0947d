"""Logger factory used across roikit.

Every module grabs its logger the same way::

    from roikit.utils.logs import report

    logger = report.settings(__file__)

Loggers live under the ``roikit`` namespace and share a single stderr handler
that is attached the first time any logger is requested.  The level comes from
``ROIKIT_LOG_LEVEL`` (default ``INFO``).
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

ROOT_LOGGER = "roikit"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at emit time (it may be swapped after import)."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def _configure_root() -> logging.Logger:
    global _configured
    root = logging.getLogger(ROOT_LOGGER)
    if _configured:
        return root

    level_name = os.getenv("ROIKIT_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    handler = _StderrHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    _configured = True
    return root


def settings(file: str) -> logging.Logger:
    """Return the ``roikit.<module>`` logger for the calling *file*."""
    _configure_root()
    return logging.getLogger(f"{ROOT_LOGGER}.{Path(file).stem}")


def set_level(level: str | int) -> None:
    """Adjust the level of every roikit logger at once (used by ``--verbose``)."""
    root = _configure_root()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    root.setLevel(level)
