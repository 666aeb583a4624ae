"""Unit tests for context binding, span() and @profiled."""

from __future__ import annotations

import asyncio
import threading

import pytest

from structlog.testing import capture_logs

from calltree.profiler.context import activate, current_tracker, profiled, span


class TestActivate:
    def test_nothing_bound_by_default(self):
        assert current_tracker() is None

    def test_binds_and_unbinds(self, tracker):
        with activate(tracker) as bound:
            assert bound is tracker
            assert current_tracker() is tracker
        assert current_tracker() is None

    def test_nested_activation_restores_outer(self, tracker):
        from calltree.profiler.tracker import SpanTracker

        inner = SpanTracker()
        with activate(tracker):
            with activate(inner):
                assert current_tracker() is inner
            assert current_tracker() is tracker

    def test_other_threads_do_not_see_binding(self, tracker):
        seen = []
        with activate(tracker):
            t = threading.Thread(target=lambda: seen.append(current_tracker()))
            t.start()
            t.join()
        assert seen == [None]


class TestSpan:
    def test_records_nested_spans(self, tracker, manual_clock):
        with activate(tracker):
            with span("root"):
                with span("child", "note"):
                    manual_clock.advance_ms(4)
        root = tracker.root
        assert root.is_stopped
        assert root.children[0].name == "child"
        assert root.children[0].annotation == "note"
        assert root.children[0].elapsed_ms() == pytest.approx(4.0)

    def test_closes_on_exception(self, tracker):
        with activate(tracker):
            with span("root"):
                with pytest.raises(RuntimeError):
                    with span("boom"):
                        raise RuntimeError("fail")
        assert tracker.root.children[0].is_stopped
        assert tracker.current is None

    def test_noop_without_tracker(self):
        with span("ignored"):
            value = 1
        assert value == 1

    def test_start_after_close_is_logged_and_skipped(self, tracker):
        ran = []
        with activate(tracker):
            with span("root"):
                pass
            with capture_logs() as logs:
                with span("late"):
                    ran.append(True)
        assert ran == [True]
        assert tracker.root.children == []
        assert [(e["op"], e["error_type"], e["span"]) for e in logs] == [
            ("start", "ProtocolError", "late"),
        ]

    def test_mismatched_stop_is_logged(self, tracker):
        with activate(tracker):
            with span("root"):
                with capture_logs() as logs:
                    with span("handler"):
                        tracker.start("dangling")
        assert logs[0]["op"] == "stop"
        assert logs[0]["error_type"] == "SpanMismatchError"
        assert logs[0]["span"] == "handler"

    def test_block_exception_not_replaced_by_stop_error(self, tracker):
        with activate(tracker):
            tracker.start("root")
            with capture_logs():
                with pytest.raises(ValueError, match="workload bug"):
                    with span("handler"):
                        tracker.start("dangling")
                        raise ValueError("workload bug")
        assert not tracker.root.children[0].is_stopped

    def test_profiled_swallows_profiler_errors(self, tracker):
        @profiled("late")
        def handler():
            return "done"

        with activate(tracker):
            with span("root"):
                pass
            with capture_logs():
                assert handler() == "done"


class TestProfiled:
    def test_defaults_to_qualname(self, tracker):
        @profiled()
        def work():
            return 7

        with activate(tracker):
            with span("root"):
                assert work() == 7
        assert tracker.root.children[0].name.endswith("work")

    def test_explicit_name(self, tracker):
        @profiled("db.query")
        def query():
            return "rows"

        with activate(tracker):
            with span("root"):
                query()
                query()
        assert [c.name for c in tracker.root.children] == ["db.query", "db.query"]

    def test_preserves_metadata(self):
        @profiled()
        def documented():
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."

    def test_async_function(self, tracker):
        @profiled("fetch")
        async def fetch():
            await asyncio.sleep(0)
            return "ok"

        async def main():
            with span("root"):
                return await fetch()

        with activate(tracker):
            assert asyncio.run(main()) == "ok"
        assert tracker.root.children[0].name == "fetch"
        assert tracker.root.children[0].is_stopped

    def test_noop_without_tracker(self):
        @profiled()
        def plain(x):
            return x * 2

        assert plain(4) == 8
