"""Profiling session: the harness around one tracker.

A session decides nothing about *what* to time.  It opens the root span,
optionally back-dates it to an externally captured request start, hands
out log-and-continue wrappers around the tracker, and at the end renders
and persists the report.

Profiler errors are logged, never raised -- profiling must never break
the request it instruments.  A failure degrades to "no report".
"""

from __future__ import annotations

import contextlib
import contextvars
from collections.abc import Container
from types import TracebackType

from calltree.core.clock import IClock, PerfClock, WallClock
from calltree.core.config import ProfilerSettings
from calltree.core.enums import ClockKind, TrackerState
from calltree.core.errors import CallTreeError
from calltree.observability.logger import (
    bind_session,
    get_logger,
    log_profiler_error,
    unbind_session,
)
from calltree.profiler.context import activate
from calltree.profiler.storage import FileReportStorage, IReportStorage
from calltree.profiler.tracker import SpanTracker

logger = get_logger(__name__)


def should_profile(
    params: Container[str],
    settings: ProfilerSettings | None = None,
) -> bool:
    """Return True when the request asks for a profile.

    ``params`` is anything supporting ``in`` over parameter names, e.g. a
    query-string mapping.
    """
    settings = settings or ProfilerSettings()
    return settings.always_on or settings.trigger_param in params


def clock_for(settings: ProfilerSettings) -> IClock:
    if settings.clock == ClockKind.WALL:
        return WallClock()
    return PerfClock()


class ProfilingSession:
    """One start(root) ... stop(root) lifecycle producing one report.

    Parameters
    ----------
    settings:
        Span names and storage location.  Defaults to ``ProfilerSettings()``.
    storage:
        Where ``finish`` persists the report.  Defaults to a
        ``FileReportStorage`` on ``settings.storage``.
    clock:
        Timestamp source.  Must share a timebase with any ``request_start``
        passed to :meth:`begin`.
    """

    def __init__(
        self,
        settings: ProfilerSettings | None = None,
        *,
        storage: IReportStorage | None = None,
        clock: IClock | None = None,
    ) -> None:
        self._settings = settings or ProfilerSettings()
        if storage is None:
            cfg = self._settings.storage
            storage = FileReportStorage(
                cfg.directory, prefix=cfg.prefix, suffix=cfg.suffix,
            )
        self._storage = storage
        self._tracker = SpanTracker(clock or clock_for(self._settings))
        self._session_id = ""
        self._session_token: contextvars.Token[str] | None = None
        self._report_key: str | None = None
        self._exit_stack: contextlib.ExitStack | None = None

    # -- read-only ----------------------------------------------------------

    @property
    def tracker(self) -> SpanTracker:
        return self._tracker

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def report_key(self) -> str | None:
        """Storage key of the persisted report, once ``finish`` succeeded."""
        return self._report_key

    # -- lifecycle ----------------------------------------------------------

    def begin(self, request_start: float | None = None) -> bool:
        """Open the root span.

        When ``request_start`` is given the root is back-dated to it and a
        closed bootstrap span records the time spent before ``begin``.
        """
        if self._session_token is None:
            self._session_id, self._session_token = bind_session()
        root_name = self._settings.root_name
        try:
            root = self._tracker.start(root_name)
            if request_start is not None:
                root.start_time = request_start
                name = self._settings.bootstrap_name
                boot = self._tracker.start(name)
                boot.start_time = request_start
                self._tracker.stop(name)
        except CallTreeError as exc:
            self._warn("begin", exc)
            return False
        logger.debug("profiling_session_begun", root=root_name)
        return True

    def finish(self) -> str | None:
        """Close the root span, render and persist the report.

        Returns the report text, or ``None`` when anything went wrong.
        """
        try:
            return self._close_and_save()
        finally:
            self._release_session()

    # -- log-and-continue wrappers -----------------------------------------

    def start(self, name: str, annotation: str | None = None) -> bool:
        try:
            self._tracker.start(name, annotation)
        except CallTreeError as exc:
            self._warn("start", exc)
            return False
        return True

    def stop(self, name: str, annotation: str | None = None) -> bool:
        try:
            self._tracker.stop(name, annotation)
        except CallTreeError as exc:
            self._warn("stop", exc)
            return False
        return True

    def report(self) -> str | None:
        try:
            return self._tracker.report()
        except CallTreeError as exc:
            self._warn("report", exc)
            return None

    # -- context manager ----------------------------------------------------

    def __enter__(self) -> ProfilingSession:
        # An explicit begin(request_start) may already have opened the root.
        if self._tracker.state == TrackerState.EMPTY:
            self.begin()
        self._exit_stack = contextlib.ExitStack()
        self._exit_stack.enter_context(activate(self._tracker))
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._exit_stack is not None:
            self._exit_stack.close()
            self._exit_stack = None
        self.finish()

    # -- internals ----------------------------------------------------------

    def _close_and_save(self) -> str | None:
        if self._tracker.state == TrackerState.OPEN:
            if not self.stop(self._settings.root_name):
                return None
        report = self.report()
        if report is None:
            return None
        try:
            self._report_key = self._storage.save(report)
        except (CallTreeError, OSError) as exc:
            self._warn("save", exc)
            return None
        logger.info(
            "profile_saved",
            key=self._report_key,
            spans=sum(1 for _ in self._tracker.root.walk()),
        )
        return report

    def _warn(self, op: str, exc: Exception) -> None:
        log_profiler_error(logger, op, exc)

    def _release_session(self) -> None:
        if self._session_token is not None:
            unbind_session(self._session_token)
            self._session_token = None
