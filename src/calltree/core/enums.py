"""Enumerations used across the profiler."""

from enum import Enum


class TrackerState(str, Enum):
    EMPTY = "empty"  # No root yet
    OPEN = "open"  # Cursor points at an open span
    CLOSED = "closed"  # Root stopped, ready to report


class ClockKind(str, Enum):
    PERF = "perf"
    WALL = "wall"


class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"
