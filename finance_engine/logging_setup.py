"""Centralized logging configuration for the ``finance_engine`` package.

- ``configure_logging(...)``: attach a single ``StreamHandler`` to the package
  logger (``"finance_engine"``). Called once by entrypoints such as
  ``scripts/compute_snapshot.py`` or the host web application.
- ``get_logger(name)``: acquire a logger, making sure the package logger has
  at least a ``NullHandler`` so library use stays silent until configured.

Engine modules never attach their own handlers.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

from .config import LOG_LEVEL

_PKG_LOGGER_NAME = "finance_engine"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
        return logging.INFO
    if LOG_LEVEL:
        return _parse_level(LOG_LEVEL)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package logger exactly once.

    Args:
        level: Logging level as ``int`` or level name. ``None`` falls back to
            ``FINENGINE_LOG_LEVEL`` and then ``logging.INFO``.
        fmt: Optional format string, defaults to
            ``"%(asctime)s %(name)s %(levelname)s %(message)s"``.
        stream: Output stream for the handler (``sys.stderr`` by default).
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)

    # Drop NullHandlers so configured output is not swallowed.
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s"))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name with library-safe defaults."""
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
