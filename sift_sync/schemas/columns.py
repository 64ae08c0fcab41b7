"""Pydantic schemas for column analysis output and per-column configuration."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import ConfigDict, Field

from .base import WireModel
from .rules import CleaningRule

ColumnType = Literal[
    "integer", "number", "boolean", "date", "timestamp", "email", "phone", "url", "text"
]
StorageType = Literal["text", "number", "integer", "boolean", "date", "timestamp"]
FilterOperator = Literal[
    "equals",
    "not_equals",
    "contains",
    "not_contains",
    "starts_with",
    "ends_with",
    "is_empty",
    "is_not_empty",
    "greater_than",
    "less_than",
]
DuplicateHandling = Literal["keep_all", "keep_first", "keep_last", "skip_all"]


class ColumnPreview(WireModel):
    """Immutable snapshot describing one source column from a bounded sample."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Source column name from the header")
    detected_type: ColumnType = Field(..., alias="detectedType")
    sample_values: list[Any] = Field(default_factory=list, alias="sampleValues")
    unique_count: int = Field(default=0, ge=0, alias="uniqueCount")
    null_count: int = Field(default=0, ge=0, alias="nullCount")


class AnalysisResult(WireModel):
    """Column previews plus the number of sampled rows."""

    columns: list[ColumnPreview] = Field(default_factory=list)
    total_rows: int = Field(default=0, ge=0)


class ColumnConfig(WireModel):
    """User-editable configuration for a single source column."""

    source_name: str = Field(..., alias="sourceName")
    target_name: str = Field(..., alias="targetName")
    type: StorageType = "text"
    included: bool = True
    cleaning_rules: list[CleaningRule] = Field(default_factory=list, alias="cleaningRules")


class RowFilter(WireModel):
    """Include/exclude predicate evaluated against a raw source row."""

    column: str
    operator: FilterOperator
    value: Any = None
    action: Literal["include", "exclude"] = "include"


class ColumnConfiguration(WireModel):
    """Ordered column configs plus row-level filtering and de-duplication settings."""

    columns: list[ColumnConfig] = Field(default_factory=list)
    row_filters: list[RowFilter] = Field(default_factory=list)
    duplicate_key_columns: list[str] = Field(default_factory=list)
    duplicate_handling: DuplicateHandling = "keep_all"

    def included_columns(self) -> list[ColumnConfig]:
        """Return included columns in configured order."""

        return [column for column in self.columns if column.included]

    def find_column(self, name: str) -> ColumnConfig | None:
        """Resolve a column by source name first, then by target name."""

        for column in self.columns:
            if column.source_name == name:
                return column
        for column in self.columns:
            if column.target_name == name:
                return column
        return None
