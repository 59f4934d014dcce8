"""Process-wide logging bootstrap for boundfs consumers.

Library events always travel through stdlib ``logging`` under the
``boundfs.*`` logger names. An application that never configures logging
gets stdlib defaults: warnings on stderr, nothing on stdout.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog


_LOG_CONFIGURED = False


def get_logger(name: str) -> Any:
    """structlog logger emitting through the stdlib logger `name`."""
    return structlog.wrap_logger(
        logging.getLogger(name),
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def configure_logging(level: str = "INFO", json_logs: bool = False, *, force: bool = False) -> None:
    """Wire stdlib logging and structlog together.

    boundfs itself never calls this on import; applications call it (usually
    through ``settings.setup_logging()``) once at startup. Subsequent calls
    are ignored unless ``force`` is set, which replaces the root handlers and
    the structlog processors.
    """
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED and not force:
        return

    log_level = getattr(logging, str(level or "INFO").upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(level=log_level, format="%(message)s", force=force)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    processors.append(
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    _LOG_CONFIGURED = True


def is_logging_configured() -> bool:
    return _LOG_CONFIGURED
