"""Span tracker: builds the call tree from start/stop calls.

The tracker is a small state machine over ``root`` and ``current``::

    EMPTY --start--> OPEN --stop(root)--> CLOSED
                     OPEN --start/stop--> OPEN

Spans must close in exact reverse order of opening.  Every violation is
an instrumentation bug and raises immediately; deciding whether that is
fatal is left to the caller (see ``calltree.profiler.session``).

One tracker per session -- there is no process-wide instance.
"""

from __future__ import annotations

import logging

from calltree.core.clock import DEFAULT_CLOCK, IClock
from calltree.core.enums import TrackerState
from calltree.core.errors import ProtocolError, SpanMismatchError, StateError
from calltree.profiler.node import SpanNode

logger = logging.getLogger(__name__)

REPORT_HEADER = '<?xml version="1.0" encoding="utf-8" ?>'


class SpanTracker:
    """Owns one span tree and the cursor to its innermost open span."""

    def __init__(self, clock: IClock | None = None) -> None:
        self._clock = clock or DEFAULT_CLOCK
        self._root: SpanNode | None = None
        self._current: SpanNode | None = None

    # -- read-only ----------------------------------------------------------

    @property
    def clock(self) -> IClock:
        return self._clock

    @property
    def root(self) -> SpanNode | None:
        return self._root

    @property
    def current(self) -> SpanNode | None:
        """The open span awaiting its ``stop``, or ``None``."""
        return self._current

    @property
    def state(self) -> TrackerState:
        if self._root is None:
            return TrackerState.EMPTY
        if self._current is None:
            return TrackerState.CLOSED
        return TrackerState.OPEN

    # -- mutators -----------------------------------------------------------

    def start(self, name: str, annotation: str | None = None) -> SpanNode:
        """Open a span under the current one (or as the root).

        Raises:
            ProtocolError: the root span has already been closed.
        """
        if self._root is not None and self._current is None:
            raise ProtocolError("root node was already closed")

        node = SpanNode(name, annotation, clock=self._clock)
        if self._current is not None:
            self._current.add_child(node)
        else:
            self._root = node
        self._current = node
        logger.debug("span start %s depth=%d", name, node.depth)
        return node

    def stop(self, name: str, annotation: str | None = None) -> SpanNode:
        """Close the current span, which must be called ``name``.

        Raises:
            StateError: nothing was ever started.
            ProtocolError: no span is open.
            SpanMismatchError: the open span has a different name.
        """
        if self._root is None:
            raise StateError(f"closing node {name} but tree not initialized")
        if self._current is None:
            raise ProtocolError(f"closing node {name} but no node is open")
        if self._current.name != name:
            raise SpanMismatchError(name, self._current.name)

        node = self._current
        node.stop(annotation)
        self._current = node.parent
        logger.debug("span stop %s %.2fms", name, node.elapsed_ms())
        return node

    def reset(self) -> None:
        """Drop the tree and return to EMPTY."""
        self._root = None
        self._current = None

    # -- output -------------------------------------------------------------

    def report(self) -> str:
        """Render the whole tree behind an XML declaration.

        Raises:
            StateError: nothing was recorded, or a span is still open.
        """
        if self._root is None:
            raise StateError("no profile recorded, tree not initialized")
        out = [REPORT_HEADER]
        self._root.render_into(out)
        return "".join(out)
