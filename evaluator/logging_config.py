"""Centralised structlog configuration."""
import logging
import sys
import threading
from typing import Optional

import structlog

from evaluator.config import settings

_lock = threading.Lock()
_is_configured = False


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Configure stdlib logging and structlog once per process.

    Args:
        level: Overrides settings.LOG_LEVEL.
        fmt: "json" or "console"; overrides settings.LOG_FORMAT.
    """
    global _is_configured

    with _lock:
        if _is_configured:
            return

        log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
        renderer = (
            structlog.processors.JSONRenderer()
            if (fmt or settings.LOG_FORMAT) == "json"
            else structlog.dev.ConsoleRenderer()
        )

        logging.basicConfig(
            level=log_level,
            format="%(message)s",
            stream=sys.stdout,
        )

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso", utc=True),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                renderer,
            ],
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _is_configured = True
