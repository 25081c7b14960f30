"""Exception taxonomy for the trace collector.

Precondition violations (session state misuse) are caller errors and are
raised immediately. Action failures are *not* exceptions at this level: the
recorder stores them on the ActionRecord. Storage and snapshot failures are
fatal to the operation that triggered them.
"""

from __future__ import annotations


class TraceError(RuntimeError):
    """Base class for every error raised by browsertrace."""


class SessionStateError(TraceError):
    """The collector was driven through an invalid session transition."""


class NoActiveSessionError(SessionStateError):
    """`record` or `end_session` was called with no open session."""

    def __init__(self, operation: str = "record") -> None:
        super().__init__(f"No active session for {operation}(); call start_session() first.")
        self.operation = operation


class SessionAlreadyOpenError(SessionStateError):
    """`start_session` was called while another session is still open."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} is still open; end it before starting another.")
        self.session_id = session_id


class ActionInFlightError(SessionStateError):
    """A second `record` call started before the previous one returned."""


class SnapshotCaptureError(TraceError):
    """Reading page state failed (e.g. the page navigated away mid-capture)."""


class StorageError(TraceError):
    """A durable log could not be written."""


class NoDivergenceError(TraceError):
    """Two sessions share every instruction over their common prefix."""


class SessionNotFoundError(TraceError):
    """A session id was not present in the session log."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id!r} not found in the session log.")
        self.session_id = session_id


__all__ = [
    "ActionInFlightError",
    "NoActiveSessionError",
    "NoDivergenceError",
    "SessionAlreadyOpenError",
    "SessionNotFoundError",
    "SessionStateError",
    "SnapshotCaptureError",
    "StorageError",
    "TraceError",
]
