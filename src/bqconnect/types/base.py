"""Base model class for all bqconnect models with serialization support."""

from typing import Any, Dict
from pydantic import BaseModel, ConfigDict


class BQBaseModel(BaseModel):
    """Base model for bqconnect value objects.

    Provides:
    - Serialization to dictionary via to_dict()
    - Consistent configuration
    - Immutability; values are snapshotted, never mutated in place
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        populate_by_name=True,
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to a JSON-friendly dictionary.

        Enums are rendered as their values and nested models recursively.
        """
        return self.model_dump(mode="json", by_alias=False, exclude_none=True)
