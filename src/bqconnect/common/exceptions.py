import logging
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Standard error codes for bqconnect operations.

    Codes are grouped by category so callers can branch on the kind of
    failure without matching on exception classes.

    Attributes:
        VALIDATION_*: Caller-fixable argument/configuration errors
        STATE_*: Operations on closed or finished objects
        CONNECTION_*: Transport-level failures and timeouts
        EXECUTION_*: Collaborator-reported query failures
        BACKEND_*: Failures while reading result rows
        CLIENT_INFO_*: Client info property failures
    """
    # Validation errors
    VALIDATION_ERROR = "VALIDATION_001"
    INVALID_ARGUMENT = "VALIDATION_002"
    INVALID_CONFIGURATION = "VALIDATION_003"
    INVALID_LABEL = "VALIDATION_004"

    # State errors
    ILLEGAL_STATE = "STATE_001"
    CURSOR_STATE = "STATE_002"

    # Connection errors
    CONNECTION_ERROR = "CONNECTION_001"
    TIMEOUT_ERROR = "CONNECTION_003"

    # Execution errors
    EXECUTION_ERROR = "EXECUTION_001"
    QUERY_EXECUTION_ERROR = "EXECUTION_002"

    # Backend read errors
    PAGE_FETCH_ERROR = "BACKEND_001"
    STREAM_READ_ERROR = "BACKEND_002"
    BUFFER_OVERFLOW = "BACKEND_003"

    # Client info errors
    CLIENT_INFO_ERROR = "CLIENT_INFO_001"


class BQConnectError(Exception):
    """Base exception for all bqconnect errors.

    Attributes:
        message: Error message
        error_code: Error code from ErrorCode enum
        details: Additional error details
        cause: Optional underlying exception
    """

    default_code: ErrorCode = ErrorCode.EXECUTION_ERROR
    log_level: int = logging.ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

        # Lazy import to avoid circular dependency
        from bqconnect.logging import get_logger
        get_logger(__name__).log(
            self.log_level,
            message,
            extra={
                "error.code": self.error_code.value,
                "error.type": type(self).__name__,
                "error.details": self.details,
            },
            exc_info=cause is not None,
        )

    def __str__(self) -> str:
        msg = f"[{self.error_code.value}] {self.message}"
        if self.cause:
            msg = f"{msg} (caused by: {type(self.cause).__name__}: {self.cause})"
        return msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
            "cause": repr(self.cause) if self.cause is not None else None,
        }


class ValidationError(BQConnectError, ValueError):
    """Bad configuration or arguments. Raised before any I/O."""

    default_code = ErrorCode.VALIDATION_ERROR
    log_level = logging.WARNING


class IllegalStateError(BQConnectError):
    """Operation attempted on a closed connection."""

    default_code = ErrorCode.ILLEGAL_STATE
    log_level = logging.WARNING


class CursorStateError(BQConnectError):
    """Operation attempted on an exhausted, closed or failed cursor."""

    default_code = ErrorCode.CURSOR_STATE
    log_level = logging.WARNING


class BackendReadError(BQConnectError):
    """Page or stream failure while reading rows. Fatal to the cursor."""

    default_code = ErrorCode.STREAM_READ_ERROR


class BufferOverflowError(BQConnectError):
    """A backend tried to append more rows than the buffer can hold."""

    default_code = ErrorCode.BUFFER_OVERFLOW


class QueryTimeoutError(BQConnectError, TimeoutError):
    """Query submission exceeded the synchronous response timeout."""

    default_code = ErrorCode.TIMEOUT_ERROR


class BigQueryError(BQConnectError):
    """Failure reported by the query submission service.

    Attributes:
        reason: Collaborator-supplied reason, when available
        code: Collaborator-supplied numeric/status code, when available
    """

    default_code = ErrorCode.QUERY_EXECUTION_ERROR

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        code: Optional[Any] = None,
        **kwargs: Any,
    ):
        self.reason = reason
        self.code = code
        details = kwargs.pop("details", None) or {}
        if reason is not None:
            details["reason"] = reason
        if code is not None:
            details["code"] = code
        super().__init__(message, details=details, **kwargs)


class ClientInfoError(BQConnectError):
    """Client info property rejected, or set on a closed connection.

    Attributes:
        failed_properties: Mapping of property name to the rejection reason
    """

    default_code = ErrorCode.CLIENT_INFO_ERROR

    def __init__(
        self,
        message: str,
        failed_properties: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ):
        self.failed_properties = dict(failed_properties or {})
        details = kwargs.pop("details", None) or {}
        if self.failed_properties:
            details["failed_properties"] = self.failed_properties
        super().__init__(message, details=details, **kwargs)


# Helper functions for common error scenarios
def validation_error(
    message: str,
    field: Optional[str] = None,
    value: Any = None,
    error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
) -> ValidationError:
    """Create a validation error.

    Args:
        message: Error message
        field: Field that failed validation
        value: Invalid value
        error_code: More specific validation code

    Returns:
        ValidationError carrying the field and value in its details
    """
    details: Dict[str, Any] = {}
    if field:
        details["field"] = field
    if value is not None:
        details["value"] = str(value)
    return ValidationError(message, error_code=error_code, details=details)


def wrap_submission_error(exc: BaseException, sql: str) -> BQConnectError:
    """Wrap a query submission failure into the error taxonomy.

    Errors already in the taxonomy pass through unchanged.
    """
    if isinstance(exc, BQConnectError):
        return exc
    preview = sql[:100] + "..." if len(sql) > 100 else sql
    return BigQueryError(
        f"Query submission failed: {exc}",
        reason=getattr(exc, "reason", None),
        code=getattr(exc, "code", None),
        details={"query": preview},
        cause=exc,
    )


def backend_read_error(
    message: str,
    exc: BaseException,
    error_code: ErrorCode = ErrorCode.STREAM_READ_ERROR,
    **details: Any,
) -> BQConnectError:
    """Wrap a page/stream failure as a BackendReadError.

    Errors already in the taxonomy pass through unchanged.
    """
    if isinstance(exc, BQConnectError):
        return exc
    return BackendReadError(
        f"{message}: {exc}",
        error_code=error_code,
        details=details,
        cause=exc,
    )
