"""Logging helpers for envbind."""

import sys
from typing import Any

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level:^7} | {file.name}:{line} | {message}"


def enable_logging(
    level: str = "DEBUG", sink: Any = sys.stderr, **sink_kwargs: Any
) -> int:
    """Turn on envbind's Loguru messages and route them to ``sink``.

    The package disables its logger on import, as libraries using Loguru
    should. Extra keyword arguments go to ``logger.add`` (for file sinks,
    e.g. ``rotation="00:00", retention="7 days"``). Returns the handler id
    so callers can ``logger.remove`` it.
    """
    logger.enable("envbind")
    handler_id = logger.add(
        sink=sink,
        level=level,
        format=LOG_FORMAT,
        filter="envbind",
        **sink_kwargs,
    )
    logger.info(f"envbind logging enabled (level={level}, sink={sink}).")
    return handler_id


def disable_logging() -> None:
    """Silence envbind's Loguru messages again."""
    logger.disable("envbind")
