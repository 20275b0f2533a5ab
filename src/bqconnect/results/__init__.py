"""Result delivery: job metadata, read-ahead buffer, backends and the cursor."""

from bqconnect.results.metadata import JobMetadata, SchemaField
from bqconnect.results.buffer import ReadAheadBuffer
from bqconnect.results.backends import Backend, PagedBackend, StreamingBackend
from bqconnect.results.cursor import ResultCursor, select_backend

__all__ = [
    "JobMetadata",
    "SchemaField",
    "ReadAheadBuffer",
    "Backend",
    "PagedBackend",
    "StreamingBackend",
    "ResultCursor",
    "select_backend",
]
