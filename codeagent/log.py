"""Logging configuration."""

from __future__ import annotations

import sys

from loguru import logger

DEFAULT_FORMAT = "{time:HH:mm:ss} | {level:<7} | {message}"

# Remove loguru defaults; keep a fallback sink until configure() runs.
logger.remove()
logger.add(sys.stderr, level="WARNING", format=DEFAULT_FORMAT)


def configure(
    level: str = "WARNING",
    fmt: str = "",
    json_format: bool = False,
    file: str = "",
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Replace all sinks. Safe to call more than once.

    The interactive REPL shares stderr with the user, so the default level
    is WARNING; a log file gets the same level with full timestamps.
    """
    logger.remove()

    if json_format:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=fmt or DEFAULT_FORMAT)

    if file:
        kw: dict = {"level": level, "rotation": rotation, "retention": retention}
        if json_format:
            kw["serialize"] = True
        else:
            kw["format"] = fmt or "{time:YYYY-MM-DD HH:mm:ss} | {level:<7} | {message}"
        logger.add(file, **kw)
