"""Schemas package initialization."""
from .columns import (
    AnalysisResult,
    ColumnConfig,
    ColumnConfiguration,
    ColumnPreview,
    RowFilter,
)
from .mapping import DestinationField, DestinationSchema, FieldMapping
from .rules import CleaningRule, parse_rule
from .schedule import ScheduleConfiguration
from .sync import DataSource, SyncLog, SyncStatus, WriteResult

__all__ = [
    "AnalysisResult",
    "CleaningRule",
    "ColumnConfig",
    "ColumnConfiguration",
    "ColumnPreview",
    "DataSource",
    "DestinationField",
    "DestinationSchema",
    "FieldMapping",
    "RowFilter",
    "ScheduleConfiguration",
    "SyncLog",
    "SyncStatus",
    "WriteResult",
    "parse_rule",
]
