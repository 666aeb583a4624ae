"""Span tree profiler.

Public API
----------
::

    from calltree.profiler import (
        SpanTracker,
        SpanNode,
        ProfilingSession,
        span,
        profiled,
        FileReportStorage,
    )
"""

from __future__ import annotations

from calltree.profiler.context import activate, current_tracker, profiled, span
from calltree.profiler.node import SpanNode
from calltree.profiler.session import ProfilingSession, should_profile
from calltree.profiler.storage import (
    FileReportStorage,
    IReportStorage,
    MemoryReportStorage,
)
from calltree.profiler.tracker import REPORT_HEADER, SpanTracker

__all__ = [
    # Core
    "SpanNode",
    "SpanTracker",
    "REPORT_HEADER",
    # Harness
    "ProfilingSession",
    "should_profile",
    # Context
    "activate",
    "current_tracker",
    "span",
    "profiled",
    # Storage
    "IReportStorage",
    "MemoryReportStorage",
    "FileReportStorage",
]
