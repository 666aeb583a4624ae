"""Shared fixtures for the calltree test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from calltree.core.clock import ManualClock
from calltree.core.config import ProfilerSettings
from calltree.profiler.storage import MemoryReportStorage
from calltree.profiler.tracker import SpanTracker


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

@pytest.fixture
def manual_clock() -> ManualClock:
    """Return a ManualClock starting at t=0."""
    return ManualClock()


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------

@pytest.fixture
def tracker(manual_clock: ManualClock) -> SpanTracker:
    """Return an empty tracker on the manual clock."""
    return SpanTracker(clock=manual_clock)


@pytest.fixture
def db_render_tracker(tracker: SpanTracker, manual_clock: ManualClock) -> SpanTracker:
    """Closed tree: root(15ms) -> db(5ms), render(3ms)."""
    tracker.start("root")
    manual_clock.advance_ms(2)
    tracker.start("db")
    manual_clock.advance_ms(5)
    tracker.stop("db")
    manual_clock.advance_ms(1)
    tracker.start("render")
    manual_clock.advance_ms(3)
    tracker.stop("render")
    manual_clock.advance_ms(4)
    tracker.stop("root")
    return tracker


# ---------------------------------------------------------------------------
# Storage / settings
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_storage() -> MemoryReportStorage:
    """Return a fresh MemoryReportStorage instance."""
    return MemoryReportStorage()


@pytest.fixture
def settings(tmp_path: Path) -> ProfilerSettings:
    """Settings writing profiles under the test's tmp directory."""
    return ProfilerSettings(storage={"directory": str(tmp_path / "profiles")})
