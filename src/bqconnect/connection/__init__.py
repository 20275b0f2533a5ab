"""Connection entry point and its value types."""

from bqconnect.connection.types import (
    ConnectionProperty,
    ConnectionPropertyKey,
    DatasetId,
    QueryOptions,
    QueryParameter,
    validate_label,
)
from bqconnect.connection.connection import Connection

__all__ = [
    "Connection",
    "ConnectionProperty",
    "ConnectionPropertyKey",
    "DatasetId",
    "QueryOptions",
    "QueryParameter",
    "validate_label",
]
