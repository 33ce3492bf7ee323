"""structlog configuration shared by every module."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from panelsync.config import settings

_SECRET_KEYS = frozenset({"passwd", "passwd2", "password", "daPassword"})


def mask_secrets(params: dict[str, Any] | None) -> dict[str, Any]:
    """Return a copy of *params* safe to log."""
    if not params:
        return {}
    return {
        k: ("***" if k in _SECRET_KEYS and v else v)
        for k, v in params.items()
    }


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """Configure stdlib logging and structlog once at startup."""
    level_name = (level or settings.panelsync_log_level).upper()
    use_json = settings.panelsync_log_json if json_logs is None else json_logs

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    renderer: Any
    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
