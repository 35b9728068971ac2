"""
Structured logging for the pairing service.

Every log call takes a snake_case event name plus keyword context:

    logger.info("pairing_code_issued", session_id=session_id, code=code)

The correlation ID of the current request is kept in structlog contextvars,
so it is attached to every line emitted while that request is handled.
"""
from __future__ import annotations

import logging
import sys
from typing import Any, Optional

import structlog

CORRELATION_ID_KEY = "correlation_id"


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure stdlib logging and structlog processors."""
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(**initial_values: Any) -> Any:
    """Return a logger with the given context bound to it."""
    return structlog.get_logger("pairing_api", **initial_values)


def set_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(**{CORRELATION_ID_KEY: correlation_id})


def get_correlation_id() -> Optional[str]:
    return structlog.contextvars.get_contextvars().get(CORRELATION_ID_KEY)


def clear_correlation_id() -> None:
    structlog.contextvars.unbind_contextvars(CORRELATION_ID_KEY)


def mask_phone(phone: Optional[str]) -> str:
    """Keep only the last four digits of a phone number for log output."""
    if not phone:
        return ""
    if len(phone) <= 4:
        return "*" * len(phone)
    return "*" * (len(phone) - 4) + phone[-4:]


logger = structlog.get_logger("pairing_api")
