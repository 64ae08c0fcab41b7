"""Field mapping validation and application against a destination schema."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..cleaning import values
from ..exceptions import ConfigurationError
from ..schemas.columns import ColumnConfig, ColumnConfiguration
from ..schemas.mapping import DestinationSchema, FieldMapping


@dataclass
class MappedRecord:
    """Destination-shaped record plus row errors raised while mapping it."""

    record: dict[str, Any]
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class FieldMapper:
    """Bind cleaned rows to a destination schema.

    A ``schema`` of ``None`` means a passthrough destination: with no mappings,
    every included column is forwarded under its target name.
    """

    def __init__(
        self,
        schema: DestinationSchema | None,
        columns: ColumnConfiguration | Sequence[ColumnConfig],
    ) -> None:
        self.schema = schema
        if isinstance(columns, ColumnConfiguration):
            self.configuration = columns
        else:
            self.configuration = ColumnConfiguration(columns=list(columns))

    def validate(self, mappings: Sequence[FieldMapping]) -> list[str]:
        """Return every configuration problem with ``mappings``."""

        errors: list[str] = []
        counts = Counter(mapping.target_field for mapping in mappings)
        for target, count in counts.items():
            if count > 1:
                errors.append(f"Field '{target}' is mapped more than once")

        known_fields = set(self.schema.field_names) if self.schema is not None else None
        for mapping in mappings:
            if known_fields is not None and mapping.target_field not in known_fields:
                errors.append(
                    f"Field '{mapping.target_field}' is not part of the "
                    f"'{self.schema.type}' destination"
                )
            column = self.configuration.find_column(mapping.source_column)
            if column is None:
                errors.append(
                    f"Field '{mapping.target_field}' is mapped to unknown column "
                    f"'{mapping.source_column}'"
                )
            elif not column.included:
                errors.append(
                    f"Field '{mapping.target_field}' is mapped to excluded column "
                    f"'{mapping.source_column}'"
                )

        if self.schema is not None:
            for required in self.schema.required_fields:
                if counts[required.field] == 0:
                    errors.append(f"Required field '{required.label}' ({required.field}) is not mapped")
        return errors

    def ensure_valid(self, mappings: Sequence[FieldMapping]) -> None:
        """Raise ConfigurationError listing every problem with ``mappings``."""

        errors = self.validate(mappings)
        if errors:
            raise ConfigurationError("Invalid field mappings: " + "; ".join(errors), errors=errors)

    def _required_fields(self, mappings: Sequence[FieldMapping]) -> set[str]:
        required = {mapping.target_field for mapping in mappings if mapping.required}
        if self.schema is not None:
            required.update(self.schema.required_field_names)
        return required

    def apply(self, cleaned_row: Mapping[str, Any], mappings: Sequence[FieldMapping]) -> MappedRecord:
        """Copy mapped source values into their destination fields.

        Unmapped columns are left out. A required field that ends up null or
        empty is reported as a row error; the record is still returned.
        """

        if self.schema is None and not mappings:
            return MappedRecord(record=dict(cleaned_row))

        record: dict[str, Any] = {}
        for mapping in mappings:
            column = self.configuration.find_column(mapping.source_column)
            key = column.target_name if column is not None else mapping.source_column
            record[mapping.target_field] = cleaned_row.get(key)

        errors = [
            f"Required field '{name}' is empty"
            for name in sorted(self._required_fields(mappings))
            if values.is_empty(record.get(name))
        ]
        return MappedRecord(record=record, errors=errors)


def _normalize(name: str) -> str:
    return values.to_snake_case(name).replace("_", "")


def auto_map_fields(
    columns: Sequence[ColumnConfig] | Sequence[str],
    schema: DestinationSchema,
) -> list[FieldMapping]:
    """Suggest mappings by matching column names against field names, labels and aliases."""

    candidates: list[tuple[str, set[str]]] = []
    for column in columns:
        if isinstance(column, ColumnConfig):
            if not column.included:
                continue
            candidates.append(
                (column.source_name, {_normalize(column.source_name), _normalize(column.target_name)})
            )
        else:
            candidates.append((column, {_normalize(column)}))

    required = set(schema.required_field_names)
    used: set[str] = set()
    mappings: list[FieldMapping] = []
    for destination_field in schema.all_fields():
        names = {
            _normalize(destination_field.field),
            _normalize(destination_field.label),
            *(_normalize(alias) for alias in destination_field.aliases),
        }
        for source_name, normalized in candidates:
            if source_name in used or not normalized & names:
                continue
            used.add(source_name)
            mappings.append(
                FieldMapping(
                    target_field=destination_field.field,
                    source_column=source_name,
                    required=destination_field.field in required,
                )
            )
            break
    return mappings
