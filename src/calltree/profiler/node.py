"""Span tree node.

A ``SpanNode`` is one timed unit of work.  It owns its children and holds
only a weak back-reference to its parent, so a detached subtree is never
kept alive by its ancestors' bookkeeping.

Rendering produces one ``<node>`` element per span::

    <node time="12.34ms" name="root" unprofiled="3.00ms 24%">
        <node time="9.34ms" name="db" additional="SELECT 1"/>
    </node>
"""

from __future__ import annotations

import weakref
from collections.abc import Iterator
from decimal import ROUND_HALF_UP, Decimal
from xml.sax.saxutils import escape

from calltree.core.clock import DEFAULT_CLOCK, IClock
from calltree.core.errors import NodeNotClosedError, ProtocolError, StateError

# Unaccounted time below this is timestamp jitter, not missing work.
UNACCOUNTED_FLOOR_MS = 1.0

INDENT = "    "


def format_fixed(value: float, places: int) -> str:
    """Format ``value`` with ``places`` decimals, rounding half away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return str(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def clean_attr(text: str) -> str:
    """Strip double quotes and escape markup so the text fits an attribute."""
    return escape(text.replace('"', ""))


class SpanNode:
    """One named, timed span in the call tree."""

    __slots__ = (
        "name",
        "annotation",
        "start_time",
        "stop_time",
        "depth",
        "children",
        "_parent",
        "_clock",
        "__weakref__",
    )

    def __init__(
        self,
        name: str,
        annotation: str | None = None,
        *,
        clock: IClock | None = None,
    ) -> None:
        self._clock = clock or DEFAULT_CLOCK
        self.start_time: float = self._clock.now()
        self.stop_time: float | None = None
        self.name = name
        self.annotation = annotation or ""
        self.depth = 0
        self.children: list[SpanNode] = []
        self._parent: weakref.ref[SpanNode] | None = None

    def __repr__(self) -> str:
        state = "stopped" if self.is_stopped else "open"
        return f"SpanNode({self.name!r}, depth={self.depth}, {state})"

    # -- tree ---------------------------------------------------------------

    @property
    def parent(self) -> SpanNode | None:
        return self._parent() if self._parent is not None else None

    def add_child(self, node: SpanNode) -> None:
        """Attach ``node`` as the last child of this span."""
        self.children.append(node)
        node._parent = weakref.ref(self)
        node.depth = self.depth + 1

    def root_path(self) -> list[str]:
        """Names from the root down to this span, inclusive."""
        path: list[str] = []
        node: SpanNode | None = self
        while node is not None:
            path.append(node.name)
            node = node.parent
        path.reverse()
        return path

    def walk(self) -> Iterator[SpanNode]:
        """Depth-first, pre-order iteration over this subtree."""
        yield self
        for child in self.children:
            yield from child.walk()

    # -- timing -------------------------------------------------------------

    @property
    def is_stopped(self) -> bool:
        return self.stop_time is not None

    def stop(self, annotation: str | None = None) -> None:
        """Close the span, appending ``annotation`` to any existing text.

        Raises:
            ProtocolError: the span was already stopped.
            StateError: the clock reads earlier than the start timestamp.
        """
        if self.stop_time is not None:
            raise ProtocolError(
                f"node {'/'.join(self.root_path())} already stopped"
            )
        now = self._clock.now()
        if now < self.start_time:
            raise StateError(
                f"node {self.name} stops at {now} before its start {self.start_time}"
            )
        if annotation:
            self.annotation = f"{self.annotation} {annotation}"
        self.stop_time = now

    def elapsed_ms(self) -> float:
        if self.stop_time is None:
            raise NodeNotClosedError("/".join(self.root_path()))
        return (self.stop_time - self.start_time) * 1000

    def unaccounted_ms(self) -> float:
        """Own elapsed time not covered by direct children.

        Returns 0.0 for leaves and whenever the gap is under
        ``UNACCOUNTED_FLOOR_MS``.
        """
        if not self.children:
            return 0.0
        covered = sum(child.elapsed_ms() for child in self.children)
        missing = self.elapsed_ms() - covered
        return 0.0 if missing < UNACCOUNTED_FLOOR_MS else missing

    # -- rendering ----------------------------------------------------------

    def render_into(self, out: list[str]) -> None:
        """Append this subtree's elements to ``out``, one line per chunk."""
        if self.stop_time is None:
            raise NodeNotClosedError("/".join(self.root_path()))

        pre = INDENT * self.depth
        time_ms = self.elapsed_ms()
        unprofiled = self.unaccounted_ms()

        attrs = f'time="{format_fixed(time_ms, 2)}ms" name="{clean_attr(self.name)}"'
        if unprofiled > 0:
            pct = format_fixed(unprofiled / (time_ms / 100), 0)
            attrs += f' unprofiled="{format_fixed(unprofiled, 2)}ms {pct}%"'
        note = self.annotation.strip()
        if note:
            attrs += f' additional="{clean_attr(note)}"'

        if not self.children:
            out.append(f"\n{pre}<node {attrs}/>")
            return
        out.append(f"\n{pre}<node {attrs}>")
        for child in self.children:
            child.render_into(out)
        out.append(f"\n{pre}</node>")

    def render(self) -> str:
        out: list[str] = []
        self.render_into(out)
        return "".join(out)
