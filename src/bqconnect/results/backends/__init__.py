"""Row-producing backends behind a result cursor."""

from bqconnect.results.backends.base import Backend
from bqconnect.results.backends.paged import PagedBackend
from bqconnect.results.backends.streaming import StreamingBackend

__all__ = [
    "Backend",
    "PagedBackend",
    "StreamingBackend",
]
