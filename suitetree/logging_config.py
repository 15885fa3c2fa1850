"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from suitetree.config import TreeConfig


def configure_logging(
    level: int | str | None = None, config: TreeConfig | None = None
) -> None:
    """Configure structlog for JSON output.

    Args:
        level: Logging level applied to all loggers, either numeric or a
            level name such as ``"DEBUG"``. Defaults to the ``log_level`` of
            ``config``, or INFO without one.
        config: Tree configuration to read the level from.
    """
    if level is None:
        level = config.log_level if config is not None else logging.INFO
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
    )
