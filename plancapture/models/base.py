"""
Base model definitions for plancapture.

Provides the common pydantic base class for all data models.
"""

from typing import Any

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict


class BaseModel(PydanticBaseModel):
    """
    Base model with common configuration for all plancapture models.

    Features:
    - Immutable: transformations produce copies via ``model_copy``
    - JSON serialization support
    - String values are kept verbatim (no whitespace stripping)
    """

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        use_enum_values=False,
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        """Convert model to JSON string."""
        return self.model_dump_json()
