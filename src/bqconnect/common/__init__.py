"""Shared error taxonomy for bqconnect."""

from bqconnect.common.exceptions import (
    BackendReadError,
    BigQueryError,
    BQConnectError,
    BufferOverflowError,
    ClientInfoError,
    CursorStateError,
    ErrorCode,
    IllegalStateError,
    QueryTimeoutError,
    ValidationError,
    backend_read_error,
    validation_error,
    wrap_submission_error,
)

__all__ = [
    "BQConnectError",
    "ErrorCode",
    "ValidationError",
    "IllegalStateError",
    "CursorStateError",
    "BackendReadError",
    "BufferOverflowError",
    "QueryTimeoutError",
    "BigQueryError",
    "ClientInfoError",
    "validation_error",
    "wrap_submission_error",
    "backend_read_error",
]
