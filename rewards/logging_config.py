"""Structured logging configuration using structlog.

Features:
- JSON-formatted logs for production, console output for development
- Decimal amounts rendered as plain strings ("19.00", not Decimal('19.00'))
- Context binding (principal_id, game_id, transfer_id) per operation
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from rewards.config import get_settings


def render_decimals(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Render Decimal values as exact strings."""
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = str(value)
    return event_dict


def configure_logging(
    log_level: str | None = None,
    json_logs: bool | None = None,
    app_env: str | None = None,
) -> None:
    """Configure structured logging.

    Arguments left as None are taken from Settings.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: If True, output JSON logs
        app_env: Application environment; production always logs JSON
    """
    settings = get_settings()
    log_level = log_level or settings.log_level
    json_logs = settings.json_logs if json_logs is None else json_logs
    app_env = app_env or settings.app_env
    use_json = json_logs or app_env == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        render_decimals,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        shared_processors.append(structlog.dev.set_exc_info)
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # SQL echo and driver chatter stay out of the ledger log
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("transaction_posted", transaction_id="123", delta="-10.00")
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables to all subsequent log calls.

    Usage:
        bind_context(principal_id="abc123")
        logger.info("wager_resolved")  # includes principal_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind context for the duration of one operation, then restore it.

    Usage:
        with log_context(principal_id=principal_id, game_kind="coin_flip"):
            ...
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    """Remove specific context variables."""
    structlog.contextvars.unbind_contextvars(*keys)
