"""Value types shared by the connection and the query submission service."""

import re
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field, field_validator

from bqconnect.constants import LABEL_KEY_PATTERN, LABEL_MAX_LENGTH, LABEL_VALUE_PATTERN
from bqconnect.types.base import BQBaseModel

_LABEL_KEY_RE = re.compile(LABEL_KEY_PATTERN)
_LABEL_VALUE_RE = re.compile(LABEL_VALUE_PATTERN)


class ConnectionPropertyKey(str, Enum):
    """Connection property keys the library recognizes.

    Any other key is accepted as-is and forwarded to the submission
    service untouched.
    """

    DATASET_PROJECT_ID = "dataset_project_id"
    TIME_ZONE = "time_zone"
    SESSION_ID = "session_id"
    QUERY_LABEL = "query_label"
    SERVICE_ACCOUNT = "service_account"


class DatasetId(BQBaseModel):
    project: Optional[str] = Field(default=None, min_length=1)
    dataset: str = Field(..., min_length=1, max_length=1024)

    @classmethod
    def parse(cls, value: str, default_project: Optional[str] = None) -> "DatasetId":
        """Parse ``project.dataset`` or a bare ``dataset`` name."""
        project, _, dataset = value.rpartition(".")
        return cls(project=project or default_project, dataset=dataset)

    def __str__(self) -> str:
        return f"{self.project}.{self.dataset}" if self.project else self.dataset


class ConnectionProperty(BQBaseModel):
    """A single ``key=value`` connection property."""

    key: str = Field(..., min_length=1)
    value: str

    @property
    def is_recognized(self) -> bool:
        return self.key in {k.value for k in ConnectionPropertyKey}


class QueryParameter(BQBaseModel):
    """A bound query parameter.

    Named parameters (``@name``) carry a name; positional ones (``?``) don't.
    ``parameter_type`` is the BigQuery type name, e.g. ``STRING`` or ``INT64``.
    """

    name: Optional[str] = Field(default=None, min_length=1)
    parameter_type: str = Field(..., min_length=1)
    value: Any = None

    @field_validator("parameter_type")
    @classmethod
    def _upper_type(cls, v: str) -> str:
        return v.upper()


class QueryOptions(BQBaseModel):
    """Snapshot of connection settings sent along with a query.

    Taken at submission time; later connection changes never reach a job
    that is already submitted.
    """

    dry_run: bool = False
    use_legacy_sql: bool = False
    use_query_cache: bool = True
    maximum_bytes_billed: Optional[int] = None
    max_results: Optional[int] = None
    timeout_seconds: Optional[float] = None
    default_dataset: Optional[DatasetId] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    query_parameters: Tuple[QueryParameter, ...] = ()
    connection_properties: Tuple[ConnectionProperty, ...] = ()


def validate_label(key: str, value: Optional[str]) -> List[str]:
    """Return the list of problems with a label; empty when it is valid.

    Keys must start with a letter; keys and values may only contain
    lowercase letters, digits, underscores and dashes, up to 63 characters.
    """
    problems: List[str] = []
    if not isinstance(key, str) or not key:
        return ["label key must be a non-empty string"]
    if len(key) > LABEL_MAX_LENGTH:
        problems.append(f"label key '{key}' is longer than {LABEL_MAX_LENGTH} characters")
    if key != key.lower() or not _LABEL_KEY_RE.fullmatch(key):
        problems.append(
            f"label key '{key}' must start with a lowercase letter and contain only "
            "lowercase letters, digits, underscores and dashes"
        )
    if value is not None and not isinstance(value, str):
        problems.append(f"label value for '{key}' must be a string, got {type(value).__name__}")
    elif value:
        if len(value) > LABEL_MAX_LENGTH:
            problems.append(f"label value for '{key}' is longer than {LABEL_MAX_LENGTH} characters")
        if value != value.lower() or not _LABEL_VALUE_RE.fullmatch(value):
            problems.append(
                f"label value for '{key}' may only contain lowercase letters, digits, "
                "underscores and dashes"
            )
    return problems
