"""Constants and enumerations for bqconnect."""

from bqconnect.constants.core import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_MAX_STREAM_PARTITIONS,
    DEFAULT_MINIMUM_TABLE_SIZE,
    DEFAULT_SYNCHRONOUS_RESPONSE_TIMEOUT_SECONDS,
    DEFAULT_TOTAL_TO_FIRST_PAGE_SIZE_RATIO,
    LABEL_KEY_PATTERN,
    LABEL_MAX_LENGTH,
    LABEL_VALUE_PATTERN,
    MIN_PAGE_SIZE,
    PLATFORM_NAME,
)
from bqconnect.constants.cursor import BackendKind, CursorState

__all__ = [
    "BackendKind",
    "CursorState",
    "MIN_PAGE_SIZE",
    "DEFAULT_TOTAL_TO_FIRST_PAGE_SIZE_RATIO",
    "DEFAULT_MINIMUM_TABLE_SIZE",
    "DEFAULT_BUFFER_SIZE",
    "DEFAULT_SYNCHRONOUS_RESPONSE_TIMEOUT_SECONDS",
    "DEFAULT_MAX_STREAM_PARTITIONS",
    "LABEL_MAX_LENGTH",
    "LABEL_KEY_PATTERN",
    "LABEL_VALUE_PATTERN",
    "PLATFORM_NAME",
]
