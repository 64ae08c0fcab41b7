"""Destination schemas and field mapping."""
from .mapper import FieldMapper, MappedRecord, auto_map_fields
from .registry import (
    PASSTHROUGH_DESTINATIONS,
    get_destination_schema,
    list_destination_schemas,
    register_destination_schema,
)

__all__ = [
    "FieldMapper",
    "MappedRecord",
    "PASSTHROUGH_DESTINATIONS",
    "auto_map_fields",
    "get_destination_schema",
    "list_destination_schemas",
    "register_destination_schema",
]
