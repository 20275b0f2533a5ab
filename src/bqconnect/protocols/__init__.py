"""Protocols for the remote services bqconnect depends on."""

from bqconnect.protocols.services import (
    END_OF_STREAM,
    ClientInfoService,
    Page,
    PageFetchService,
    PartitionSpec,
    QuerySubmissionService,
    Row,
    StreamingReadService,
)

__all__ = [
    "END_OF_STREAM",
    "Row",
    "Page",
    "PartitionSpec",
    "QuerySubmissionService",
    "PageFetchService",
    "StreamingReadService",
    "ClientInfoService",
]
