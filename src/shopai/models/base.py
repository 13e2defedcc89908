"""Base model for everything that crosses the wire.

The backend speaks camelCase JSON; Python code uses snake_case attributes.
``APIModel`` bridges the two with an alias generator, accepts either form on
input and ignores unknown keys so additive backend changes never break
decoding.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Pydantic base with camelCase aliases for backend payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Dump to a JSON-compatible dict using the backend's field names."""
        return self.model_dump(mode="json", by_alias=True)
