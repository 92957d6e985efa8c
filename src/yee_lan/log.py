"""Logging bootstrap for applications embedding yee-lan."""

from __future__ import annotations

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "yee_lan"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None, rich_output: bool = True) -> logging.Logger:
    """
    Attach a handler to the ``yee_lan`` logger.

    The level comes from ``level``, then ``YEE_LAN_LOG_LEVEL``, then WARNING.
    Calling this again replaces the previously installed handler.

    Args:
        level: Log level name (e.g. "INFO", "DEBUG")
        rich_output: Render through Rich on stderr instead of a plain stream

    Returns:
        The configured package logger
    """
    log_level = level or os.environ.get("YEE_LAN_LOG_LEVEL") or "WARNING"
    numeric_level = getattr(logging, log_level.upper(), logging.WARNING)

    package_logger = logging.getLogger(LOGGER_NAME)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler: logging.Handler
    if rich_output:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))

    package_logger.addHandler(handler)
    package_logger.setLevel(numeric_level)
    return package_logger
