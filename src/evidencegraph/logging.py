"""
Diagnostics for the evidencegraph library modules.

Registry, resolver, audit and master log through stdlib loggers under the
``evidencegraph`` namespace. Nothing is printed until a level is chosen,
either by the host application or via ``EVIDENCEGRAPH_LOG_LEVEL``. The store,
lifecycle and CLI layers log through loguru instead; see ``cli.py``.
"""

from __future__ import annotations

import logging
import os
from typing import IO, Optional

PACKAGE_LOGGER = "evidencegraph"
LOG_LEVEL_ENV = "EVIDENCEGRAPH_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger(PACKAGE_LOGGER)
logger.addHandler(logging.NullHandler())


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return the package logger, or a child of it for ``name``.

    ``get_logger(__name__)`` inside the package and ``get_logger("audit")``
    both resolve to ``evidencegraph.audit``-style loggers.
    """
    if not name or name == PACKAGE_LOGGER:
        return logger
    if name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logger.getChild(name)


def _resolve_level(level: Optional[str]) -> Optional[int]:
    """An explicit level wins over the environment; blank means silent."""
    raw = level if level is not None else os.getenv(LOG_LEVEL_ENV, "")
    raw = raw.strip()
    if not raw:
        return None
    if raw.isdigit():
        return int(raw)
    resolved = logging.getLevelName(raw.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Optional[str] = None, stream: Optional[IO[str]] = None) -> Optional[int]:
    """
    Route package diagnostics to ``stream`` (stderr by default).

    Returns the numeric level applied, or None when logging stays silent.
    Calling it again replaces the previous handler.
    """
    resolved = _resolve_level(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = False

    if resolved is None:
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)
        return None

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolved)
    return resolved
