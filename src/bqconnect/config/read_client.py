"""Thresholds that decide when a cursor switches to streaming reads.

``ReadClientConfiguration`` is an immutable value built through
``ReadClientConfigurationBuilder``; every rule is checked in ``build()``.

Example:
    >>> config = (
    ...     ReadClientConfiguration.new_builder()
    ...     .set_total_to_first_page_size_ratio(5)
    ...     .set_minimum_table_size(50)
    ...     .set_buffer_size(10_000)
    ...     .build()
    ... )
    >>> config.minimum_table_size
    50
"""

from typing import Optional

from pydantic import Field, ValidationError as PydanticValidationError, model_validator

from bqconnect.common.exceptions import ErrorCode, validation_error
from bqconnect.constants import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_MINIMUM_TABLE_SIZE,
    DEFAULT_TOTAL_TO_FIRST_PAGE_SIZE_RATIO,
    MIN_PAGE_SIZE,
)
from bqconnect.types.base import BQBaseModel


class ReadClientConfiguration(BQBaseModel):
    """Immutable streaming-selection thresholds.

    Attributes:
        total_to_first_page_size_ratio: Streaming is chosen when the total
            result size is at least this many times the first page size
        minimum_table_size: Results smaller than this never stream
        buffer_size: Capacity of the cursor's read-ahead buffer, in rows
    """

    total_to_first_page_size_ratio: int = Field(
        default=DEFAULT_TOTAL_TO_FIRST_PAGE_SIZE_RATIO,
        strict=True,
        description="total size / first page size threshold for streaming",
    )
    minimum_table_size: int = Field(
        default=DEFAULT_MINIMUM_TABLE_SIZE,
        strict=True,
        description="Absolute result size below which streaming is never used",
    )
    buffer_size: int = Field(
        default=DEFAULT_BUFFER_SIZE,
        strict=True,
        description="Read-ahead buffer capacity in rows",
    )

    @model_validator(mode="after")
    def _check_thresholds(self) -> "ReadClientConfiguration":
        for name in ("total_to_first_page_size_ratio", "minimum_table_size", "buffer_size"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value}")
        if self.buffer_size < MIN_PAGE_SIZE:
            raise ValueError(
                f"buffer_size must be at least {MIN_PAGE_SIZE} rows, got {self.buffer_size}"
            )
        return self

    @classmethod
    def new_builder(cls) -> "ReadClientConfigurationBuilder":
        """Return a builder pre-filled with library defaults."""
        return ReadClientConfigurationBuilder()

    @classmethod
    def default(cls) -> "ReadClientConfiguration":
        return cls.new_builder().build()

    def to_builder(self) -> "ReadClientConfigurationBuilder":
        """Return a builder pre-filled with this configuration's values."""
        return (
            ReadClientConfigurationBuilder()
            .set_total_to_first_page_size_ratio(self.total_to_first_page_size_ratio)
            .set_minimum_table_size(self.minimum_table_size)
            .set_buffer_size(self.buffer_size)
        )


class ReadClientConfigurationBuilder:
    """Mutable builder for :class:`ReadClientConfiguration`.

    Setters return the builder so calls can be chained. Nothing is
    validated until :meth:`build`.
    """

    def __init__(self) -> None:
        self._ratio: Optional[int] = DEFAULT_TOTAL_TO_FIRST_PAGE_SIZE_RATIO
        self._minimum_table_size: Optional[int] = DEFAULT_MINIMUM_TABLE_SIZE
        self._buffer_size: Optional[int] = DEFAULT_BUFFER_SIZE

    def set_total_to_first_page_size_ratio(self, ratio: int) -> "ReadClientConfigurationBuilder":
        self._ratio = ratio
        return self

    def set_minimum_table_size(self, minimum_table_size: int) -> "ReadClientConfigurationBuilder":
        self._minimum_table_size = minimum_table_size
        return self

    def set_buffer_size(self, buffer_size: int) -> "ReadClientConfigurationBuilder":
        self._buffer_size = buffer_size
        return self

    def build(self) -> ReadClientConfiguration:
        """Validate the collected values and create the configuration.

        Raises:
            ValidationError: If a threshold is missing, not an integer,
                non-positive, or if buffer_size is below MIN_PAGE_SIZE
        """
        values = {
            "total_to_first_page_size_ratio": self._ratio,
            "minimum_table_size": self._minimum_table_size,
            "buffer_size": self._buffer_size,
        }
        try:
            return ReadClientConfiguration(**values)
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            raise validation_error(
                f"Invalid read client configuration: {first.get('msg')}",
                field=field,
                value=values.get(field) if field else None,
                error_code=ErrorCode.INVALID_CONFIGURATION,
            ) from exc
