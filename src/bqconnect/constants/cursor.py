"""Cursor-related constants and enumerations."""

from enum import Enum


class CursorState(str, Enum):
    """Lifecycle state of a result cursor.

    Values:
        CREATED: Backend chosen, nothing read yet
        ACTIVE: At least one read has been attempted
        EXHAUSTED: Every row was delivered (or the max-results cap was hit)
        CLOSED: Closed by the caller or by the owning connection
        FAILED: A backend read failed; the cursor is unusable
    """

    CREATED = "created"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CursorState.EXHAUSTED, CursorState.CLOSED, CursorState.FAILED)


class BackendKind(str, Enum):
    """Row retrieval strategy behind a cursor.

    Values:
        PAGED: Successive page-fetch requests (small results)
        STREAMING: Long-lived read streams over result partitions (large results)
    """

    PAGED = "paged"
    STREAMING = "streaming"
