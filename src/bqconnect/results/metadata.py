"""Job metadata returned by query submission."""

from typing import Any, List, Optional, Tuple

from pydantic import Field, model_validator

from bqconnect.types.base import BQBaseModel


class SchemaField(BQBaseModel):
    """A typed column of the result schema."""

    name: str = Field(..., min_length=1)
    field_type: str = Field(default="STRING", min_length=1)
    mode: str = Field(default="NULLABLE")
    description: Optional[str] = None


class JobMetadata(BQBaseModel):
    """Immutable description of a submitted query job.

    Size estimates come in rows and/or bytes. ``total_estimated_size`` and
    ``first_page_size`` always use the same unit: rows when the row count
    is known, bytes otherwise.

    Attributes:
        job_id: Identifier used to fetch pages or open streams
        schema_fields: Ordered result columns
        total_rows: Estimated total number of result rows
        total_bytes: Estimated total result size in bytes
        first_page: Rows already returned with the job response
        first_page_token: Token for the page after ``first_page``
        first_page_bytes: Size of ``first_page`` in bytes
        dry_run: Whether the job was a dry run (no rows exist)
        location: Job location, when the service reports one
    """

    job_id: str = Field(..., min_length=1)
    schema_fields: Tuple[SchemaField, ...] = Field(default=(), alias="schema")
    total_rows: Optional[int] = Field(default=None, ge=0)
    total_bytes: Optional[int] = Field(default=None, ge=0)
    first_page: Tuple[Any, ...] = ()
    first_page_token: Optional[str] = None
    first_page_bytes: Optional[int] = Field(default=None, ge=0)
    dry_run: bool = False
    location: Optional[str] = None

    @model_validator(mode="after")
    def _check_first_page(self) -> "JobMetadata":
        if self.total_rows is not None and len(self.first_page) > self.total_rows:
            raise ValueError(
                f"first page holds {len(self.first_page)} rows but total_rows is {self.total_rows}"
            )
        return self

    @property
    def column_names(self) -> List[str]:
        return [f.name for f in self.schema_fields]

    @property
    def size_unit(self) -> Optional[str]:
        if self.total_rows is not None:
            return "rows"
        if self.total_bytes is not None and self.first_page_bytes is not None:
            return "bytes"
        return None

    @property
    def total_estimated_size(self) -> Optional[int]:
        unit = self.size_unit
        if unit == "rows":
            return self.total_rows
        if unit == "bytes":
            return self.total_bytes
        return None

    @property
    def first_page_size(self) -> int:
        if self.size_unit == "bytes":
            return self.first_page_bytes or 0
        return len(self.first_page)

    @property
    def has_more_pages(self) -> bool:
        return self.first_page_token is not None
