"""
Logger tree for skills-supply.

Modules log through ``skillsupply.<name>`` children; the CLI attaches a
single stderr handler to the ``skillsupply`` logger.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

ROOT_LOGGER_NAME = "skillsupply"

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    number = getattr(logging, level.strip().upper(), None)
    return number if isinstance(number, int) else logging.WARNING


def setup_logging(level: str | int = "WARNING", stream: TextIO | None = None) -> logging.Logger:
    """Point the package logger at ``stream`` (stderr by default).

    Calling it again replaces the handler rather than adding another.
    Unknown level names fall back to WARNING.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(_level_number(level))
    return root


def get_logger(name: str) -> logging.Logger:
    """``get_logger("fetch")`` is the ``skillsupply.fetch`` logger."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
