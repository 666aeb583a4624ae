"""Structured logging for profiling sessions.

structlog renders every entry as JSON (or console text in development).
Entries emitted while a session is bound carry its ``session_id``, so a
stored report and the warnings raised while building it can be matched.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar, Token
from typing import Any

import structlog

_session_id: ContextVar[str] = ContextVar("calltree_session_id", default="")


def get_session_id() -> str:
    """Session bound to the running context, or ``""``."""
    return _session_id.get()


def bind_session(session_id: str | None = None) -> tuple[str, Token[str]]:
    """Bind ``session_id`` (a fresh UUID when omitted) to the context.

    Returns the id and the token that :func:`unbind_session` restores.
    """
    sid = session_id or str(uuid.uuid4())
    return sid, _session_id.set(sid)


def unbind_session(token: Token[str]) -> None:
    """Restore the session binding that was active before ``token``."""
    try:
        _session_id.reset(token)
    except ValueError:
        # Token was created in another context (e.g. a different task).
        _session_id.set("")


def log_profiler_error(
    logger: Any, op: str, exc: Exception, **fields: Any
) -> None:
    """Emit the ``profiler_error`` warning for a swallowed profiler failure."""
    logger.warning(
        "profiler_error",
        op=op,
        error=str(exc),
        error_type=type(exc).__name__,
        **fields,
    )


def _add_session_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor: tag entries with the bound session."""
    sid = _session_id.get()
    if sid:
        event_dict["session_id"] = sid
    return event_dict


def setup_logging(level: str = "INFO", format: str = "json") -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: "json" for production, "console" for development.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        _add_session_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)
