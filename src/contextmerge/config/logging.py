"""Shared logging helpers for contextmerge."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

LOG_LEVEL_ENV = "CONTEXTMERGE_LOG_LEVEL"


def resolve_log_level(level: int | str | None = None) -> int:
    """Turn a level name or number into a ``logging`` level.

    ``None`` reads ``CONTEXTMERGE_LOG_LEVEL`` and falls back to INFO.
    """

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV, "").strip() or logging.INFO
    if isinstance(level, int):
        return level
    resolved = logging.getLevelNamesMapping().get(level.upper())
    if resolved is None:
        raise ConfigurationError(f"Unknown log level {level!r}")
    return resolved


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Initialise the root logger once with a terse format.

    Host applications usually own logging; this is for scripts and tests that embed
    the engine directly. Pass ``force=True`` to reconfigure.
    """

    logging.basicConfig(
        level=resolve_log_level(level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
