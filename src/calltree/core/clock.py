"""Clock abstraction for span timestamps.

PerfClock: monotonic high-resolution time (default)
WallClock: epoch seconds, for seeding from an externally captured request start
ManualClock: deterministic time that only moves when told to (tests)

Spans never call ``time`` directly -- they read their clock.
"""

from __future__ import annotations

import time
from typing import Protocol


class IClock(Protocol):
    """Timestamp source used by every span."""

    def now(self) -> float:
        """Current time in seconds (float)."""
        ...


class PerfClock:
    """Monotonic clock backed by ``time.perf_counter``."""

    def now(self) -> float:
        return time.perf_counter()


class WallClock:
    """Epoch clock. Use when the root start comes from outside the process."""

    def now(self) -> float:
        return time.time()


class ManualClock:
    """Deterministic clock for tests.

    Time advances only when explicitly set or advanced.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._time = start

    def now(self) -> float:
        return self._time

    def set_time(self, t: float) -> None:
        """Move to ``t``. Must be monotonically increasing."""
        if t < self._time:
            raise ValueError(
                f"ManualClock cannot go backwards: {t} < {self._time}"
            )
        self._time = t

    def advance_ms(self, ms: float) -> None:
        """Advance time by milliseconds."""
        self.set_time(self._time + ms / 1000.0)


DEFAULT_CLOCK: IClock = PerfClock()
