"""Destination writer registry."""

from __future__ import annotations

from collections.abc import Callable

from ..schemas.sync import DataSource
from .base import BaseDestinationWriter
from .sql_writer import SqlRecordWriter

WriterFactory = Callable[[DataSource], BaseDestinationWriter]

_WRITER_REGISTRY: dict[str, WriterFactory] = {}


def _sql_writer(data_source: DataSource) -> BaseDestinationWriter:
    key_fields = data_source.source_config.get("destination_key_fields")
    return SqlRecordWriter(
        data_source.id,
        data_source.destination_type or "custom",
        key_fields=key_fields,
    )


def register_destination_writer(destination_type: str, factory: WriterFactory) -> None:
    """
    Register a writer factory for a destination type.

    Args:
        destination_type: Destination identifier, matching ``DataSource.destination_type``
        factory: Callable building a writer for a data source
    """
    _WRITER_REGISTRY[destination_type] = factory


def build_destination_writer(data_source: DataSource) -> BaseDestinationWriter:
    """Build the writer for a data source, defaulting to the SQL upsert writer."""

    factory = _WRITER_REGISTRY.get(data_source.destination_type or "custom", _sql_writer)
    return factory(data_source)


__all__ = [
    "BaseDestinationWriter",
    "SqlRecordWriter",
    "build_destination_writer",
    "register_destination_writer",
]
