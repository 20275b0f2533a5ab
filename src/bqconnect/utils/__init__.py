"""Utility functions and helpers for bqconnect."""

from bqconnect.utils.decorators import (
    call_with_timeout,
    traced,
    with_timeout,
)

__all__ = [
    "call_with_timeout",
    "traced",
    "with_timeout",
]
