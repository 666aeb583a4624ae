"""Context binding for the active tracker.

Instrumented code rarely has a tracker in hand.  ``activate`` binds one
in a ``ContextVar`` so each thread and asyncio task sees its own, and
``span`` / ``profiled`` record against whatever is bound.  With nothing
bound they do nothing, so instrumentation can stay in place when
profiling is off.

Profiler errors raised while entering or leaving a span are logged as
``profiler_error`` warnings and never reach the instrumented code; an
exception raised by the block itself always propagates unchanged.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

from calltree.core.errors import CallTreeError
from calltree.observability.logger import get_logger, log_profiler_error
from calltree.profiler.tracker import SpanTracker

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_active: ContextVar[SpanTracker | None] = ContextVar(
    "calltree_tracker", default=None,
)


def current_tracker() -> SpanTracker | None:
    """Tracker bound to the running context, if any."""
    return _active.get()


@contextmanager
def activate(tracker: SpanTracker) -> Iterator[SpanTracker]:
    """Bind ``tracker`` for the duration of the ``with`` block."""
    token = _active.set(tracker)
    try:
        yield tracker
    finally:
        _active.reset(token)


@contextmanager
def span(name: str, annotation: str | None = None) -> Iterator[None]:
    """Record the ``with`` block as a span on the active tracker.

    The span is closed even when the block raises.  A span that could not
    be opened is skipped, and is then not stopped either.
    """
    tracker = _active.get()
    if tracker is None:
        yield
        return
    opened = True
    try:
        tracker.start(name, annotation)
    except CallTreeError as exc:
        log_profiler_error(logger, "start", exc, span=name)
        opened = False
    try:
        yield
    finally:
        if opened:
            try:
                tracker.stop(name)
            except CallTreeError as exc:
                log_profiler_error(logger, "stop", exc, span=name)


def profiled(name: str | None = None) -> Callable[[F], F]:
    """Decorator: record every call as a span.

    The span name defaults to the function's qualified name.  Coroutine
    functions are wrapped so the span covers the awaited body.
    """

    def decorator(func: F) -> F:
        label = name or func.__qualname__

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with span(label):
                    return await func(*args, **kwargs)

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with span(label):
                return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
