"""bqconnect: run BigQuery SELECTs and read results through one adaptive cursor.

Small results are paged; large ones are streamed. The choice is made per
query from the job's size estimates and a :class:`ReadClientConfiguration`.
"""

from bqconnect.__version__ import __version__
from bqconnect.common.exceptions import (
    BackendReadError,
    BigQueryError,
    BQConnectError,
    ClientInfoError,
    CursorStateError,
    ErrorCode,
    IllegalStateError,
    QueryTimeoutError,
    ValidationError,
)
from bqconnect.config import ReadClientConfiguration, ReadClientConfigurationBuilder
from bqconnect.connection import (
    Connection,
    ConnectionProperty,
    ConnectionPropertyKey,
    DatasetId,
    QueryOptions,
    QueryParameter,
)
from bqconnect.constants import BackendKind, CursorState
from bqconnect.protocols import (
    END_OF_STREAM,
    ClientInfoService,
    Page,
    PageFetchService,
    PartitionSpec,
    QuerySubmissionService,
    StreamingReadService,
)
from bqconnect.results import JobMetadata, ResultCursor, SchemaField, select_backend
from bqconnect.settings import ConnectionSettings, get_settings

__all__ = [
    "__version__",

    "Connection",
    "ResultCursor",
    "ReadClientConfiguration",
    "ReadClientConfigurationBuilder",
    "ConnectionSettings",
    "get_settings",
    "select_backend",

    # Value types
    "JobMetadata",
    "SchemaField",
    "QueryOptions",
    "QueryParameter",
    "ConnectionProperty",
    "ConnectionPropertyKey",
    "DatasetId",
    "BackendKind",
    "CursorState",

    # Collaborator protocols
    "QuerySubmissionService",
    "PageFetchService",
    "StreamingReadService",
    "ClientInfoService",
    "Page",
    "PartitionSpec",
    "END_OF_STREAM",

    # Exceptions (public API)
    "BQConnectError",
    "ErrorCode",
    "ValidationError",
    "IllegalStateError",
    "CursorStateError",
    "BackendReadError",
    "QueryTimeoutError",
    "BigQueryError",
    "ClientInfoError",
]
