"""Custom exception hierarchy for the call-tree profiler."""


class CallTreeError(Exception):
    """Base exception for all profiler errors."""


# --- Configuration ---
class ConfigError(CallTreeError):
    """Invalid or missing configuration."""


# --- Span protocol ---
class ProtocolError(CallTreeError):
    """Start/stop calls arrived out of order (instrumentation bug)."""


class SpanMismatchError(ProtocolError):
    """``stop`` named a span other than the one currently open."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"closing node {expected} but current node is {actual}"
        )


# --- Tree state ---
class StateError(CallTreeError):
    """Tree or node is not in a state that allows the operation."""


class NodeNotClosedError(StateError):
    """A span was read or rendered before it was stopped."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"node {path} not closed/stopped")


# --- Storage ---
class StorageError(CallTreeError):
    """Report storage backend failure."""


class ReportNotFoundError(StorageError):
    """No stored report under the requested key."""
