"""Pydantic schemas for destination schemas and field mappings."""

from __future__ import annotations

from pydantic import Field, model_validator

from .base import WireModel


class FieldMapping(WireModel):
    """Binding from one source column to one destination field."""

    target_field: str = Field(..., alias="targetField")
    source_column: str = Field(..., alias="sourceColumn")
    required: bool = False


class DestinationField(WireModel):
    """Single field declared by a destination schema."""

    field: str
    label: str = ""
    aliases: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _default_label(self) -> DestinationField:
        if not self.label:
            self.label = self.field.replace("_", " ").title()
        return self


class DestinationSchema(WireModel):
    """Fixed set of required and optional fields rows are mapped into."""

    type: str
    label: str
    required_fields: list[DestinationField] = Field(default_factory=list)
    optional_fields: list[DestinationField] = Field(default_factory=list)

    def all_fields(self) -> list[DestinationField]:
        return [*self.required_fields, *self.optional_fields]

    @property
    def required_field_names(self) -> list[str]:
        return [item.field for item in self.required_fields]

    @property
    def field_names(self) -> list[str]:
        return [item.field for item in self.all_fields()]
