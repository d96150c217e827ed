"""
Logging Configuration
=====================

structlog setup for processes embedding the memory subsystem.

Library modules only call structlog.get_logger(); applications call
configure_logging() once at startup. Output goes to stderr so command
output on stdout stays machine readable.
"""

import logging
import sys
from typing import Union

import structlog


def configure_logging(level: Union[int, str] = logging.INFO, json_output: bool = False) -> None:
    """
    Configure structlog processors and level filtering.

    Args:
        level: Minimum level (name or logging constant)
        json_output: Render JSON lines instead of the dev console renderer
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
