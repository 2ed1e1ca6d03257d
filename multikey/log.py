"""Structured logging setup for multikey."""

import logging
import sys
from typing import Dict, Optional

import structlog

from .config import SETTINGS


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structlog to emit JSON lines on stderr.

    Every record carries ``level``, ``ts`` and ``event`` plus whatever context
    the caller bound (``key_id``, ``recovered`` and so on).
    """
    numeric_level = _level_from_str((level or SETTINGS.log_level).lower())

    logging.basicConfig(
        level=numeric_level,
        handlers=[logging.StreamHandler(sys.stderr)],
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def _configure_library_default() -> None:
    """Route events through stdlib logging until configure_logging() is called.

    Levels and handlers are then left to the host application's logging setup.
    """
    if structlog.is_configured():
        return
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str):
    _configure_library_default()
    return structlog.get_logger(name)


def _level_from_str(level: str) -> int:
    mapping: Dict[str, int] = {
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
        "warning": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG,
    }
    return mapping.get(level, logging.WARNING)


__all__ = ["configure_logging", "get_logger"]
