"""Structured logging setup using structlog.

Every module obtains its logger through ``get_logger(__name__)`` and logs
events with key/value fields. ``setup_logging`` is called once from the
API lifespan before any component is built.
"""

import logging
import sys
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, WrappedLogger


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add an ISO-8601 UTC timestamp to the log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def setup_logging(log_level: str = "info", log_format: str = "console") -> None:
    """Configure structlog over the standard library logging handler.

    Args:
        log_level: Logging level name (debug, info, warning, error, critical)
        log_format: ``console`` for human-readable output, ``json`` for log aggregation
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_timestamp,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("cache_miss", key="simulator:file_list")
    """
    return structlog.get_logger(name)


def bind_session(session_id: str) -> None:
    """Bind the session id to every log entry emitted by the current task."""
    structlog.contextvars.bind_contextvars(session_id=session_id)


def unbind_session() -> None:
    """Remove the session id from the current task's log context."""
    structlog.contextvars.unbind_contextvars("session_id")
