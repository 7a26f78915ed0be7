"""Shared base for persisted domain models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from zenith.core.clock import ensure_aware


class StoredModel(BaseModel):
    """Model persisted as camelCase JSON (``isCompleted``, ``createdDate``...).

    Attributes stay snake_case in Python and either spelling is accepted on input.
    Field constraints are loose: out-of-range values must still decode so the
    validator can repair them.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*")
    @classmethod
    def _aware_datetimes(cls, value: Any) -> Any:  # noqa: ANN401
        """Naive timestamps are read as UTC."""
        if isinstance(value, datetime):
            return ensure_aware(value)
        return value

    def to_storage(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dict using the stored field names."""
        return self.model_dump(mode="json", by_alias=True)
