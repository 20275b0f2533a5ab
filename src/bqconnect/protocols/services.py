"""Collaborator protocols consumed by the connection and cursors.

These describe the remote services bqconnect calls into. Implementations
live outside this package (an RPC client, a REST client, or an in-memory
fake in tests). Any exception an implementation raises is wrapped into
the bqconnect error taxonomy by the caller.
"""

from typing import Any, List, Optional, Protocol, Sequence, Union, runtime_checkable

from pydantic import Field

from bqconnect.connection.types import QueryOptions
from bqconnect.results.metadata import JobMetadata
from bqconnect.types.base import BQBaseModel

Row = Any


class _EndOfStream:
    """Sentinel returned by ``read_chunk`` when a stream has no more rows."""

    _instance: Optional["_EndOfStream"] = None

    def __new__(cls) -> "_EndOfStream":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END_OF_STREAM"

    def __bool__(self) -> bool:
        return False


END_OF_STREAM = _EndOfStream()


class Page(BQBaseModel):
    """One page of rows plus the token for the next one (``None`` on the last page)."""

    rows: List[Row] = Field(default_factory=list)
    next_page_token: Optional[str] = None


class PartitionSpec(BQBaseModel):
    """An independently readable slice of a job's result set."""

    index: int = Field(..., ge=0)
    name: str = Field(..., min_length=1)
    estimated_rows: Optional[int] = Field(default=None, ge=0)


@runtime_checkable
class QuerySubmissionService(Protocol):
    """Runs a query job and describes its result."""

    def submit(self, sql: str, options: QueryOptions) -> JobMetadata:
        """Submit ``sql`` and wait for the job's first response.

        Args:
            sql: Query text
            options: Dry-run, dialect, cache, billing cap, parameters, labels...

        Returns:
            Metadata for the finished (or dry-run) job
        """
        ...


@runtime_checkable
class PageFetchService(Protocol):
    """Request/response access to a job's result pages."""

    def fetch_page(self, job_id: str, page_token: Optional[str], max_rows: int) -> Page:
        """Fetch up to ``max_rows`` rows starting at ``page_token``."""
        ...


@runtime_checkable
class StreamingReadService(Protocol):
    """High-throughput streaming access to a job's result set."""

    def plan_partitions(self, job_id: str, max_partitions: int) -> List[PartitionSpec]:
        """Split the result set into at most ``max_partitions`` readable partitions.

        Partitions are returned in the order their rows should be delivered.
        """
        ...

    def open_stream(self, job_id: str, partition: PartitionSpec) -> Any:
        """Open a read stream over one partition and return its handle."""
        ...

    def read_chunk(self, handle: Any) -> Union[Sequence[Row], _EndOfStream]:
        """Return the next chunk of rows, or ``END_OF_STREAM``."""
        ...

    def close_stream(self, handle: Any) -> None:
        """Release the stream. Must be safe to call on a finished stream."""
        ...


@runtime_checkable
class ClientInfoService(Protocol):
    """Validates and stores client info properties on the remote session."""

    def set_property(self, name: str, value: Optional[str]) -> None:
        """Store ``value`` under ``name``; ``None`` clears it. Raises on rejection."""
        ...
