"""Shared pydantic base for wire-format configuration objects."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class WireModel(BaseModel):
    """Base model accepting snake_case or camelCase keys and emitting the wire aliases."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-compatible representation exchanged with the config layer."""

        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_wire(cls, payload: Any) -> Any:
        """Build the model from its JSON-compatible representation."""

        return cls.model_validate(payload)
