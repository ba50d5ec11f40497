"""Logging configuration using loguru.

Intercepts stdlib logging so that uvicorn, httpx and the runtime modules
that use ``logging.getLogger(__name__)`` all flow through loguru with a
unified format.

Security-relevant events (rejected paths, rejected git arguments) are
emitted through :func:`log_security_event` and carry a ``security`` extra,
so an operator can route them to a dedicated sink::

    logger.add("security.log", filter=lambda r: r["extra"].get("security"))
"""

from __future__ import annotations

import logging
import sys

from loguru import logger


class _InterceptHandler(logging.Handler):
    """Bridge stdlib logging records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk the call stack so loguru reports the real call-site
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru as the sole logging sink.

    Call this once at process startup (CLI or app lifespan).
    """
    level = level.upper()

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
    )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    for name in ("uvicorn.access", "httpx", "httpcore", "anthropic", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging initialised (level={})", level)


def log_security_event(user_id: str, action: str, detail: str) -> None:
    """Record a rejected access attempt on behalf of *user_id*."""
    logger.bind(security=True, user_id=user_id).warning(
        "SECURITY: rejected {} for user {}: {}",
        action,
        user_id,
        detail,
    )
