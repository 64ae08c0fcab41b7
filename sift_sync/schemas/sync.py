"""Pydantic schemas for data sources, sync status and sync logs."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import Field

from .base import WireModel
from .columns import ColumnConfiguration, ColumnPreview
from .mapping import FieldMapping
from .schedule import ScheduleConfiguration


class SyncStatus(str, Enum):
    """Sync state of a data source."""

    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    FAILED = "failed"


SyncLogStatus = Literal["running", "success", "failed"]


class SyncLog(WireModel):
    """Append-only record of a single sync attempt."""

    id: str | None = None
    data_source_id: str = Field(..., alias="dataSourceId")
    status: SyncLogStatus = "running"
    attempt: int = Field(default=1, ge=1)
    started_at: datetime = Field(..., alias="startedAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")
    records_processed: int = Field(default=0, ge=0, alias="recordsProcessed")
    records_failed: int = Field(default=0, ge=0, alias="recordsFailed")
    records_dropped: int = Field(default=0, ge=0, alias="recordsDropped")
    records_written: int = Field(default=0, ge=0, alias="recordsWritten")
    error_message: str | None = Field(default=None, alias="errorMessage")
    errors: list[str] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def is_finalized(self) -> bool:
        return self.completed_at is not None


class DataSource(WireModel):
    """Configured, schedulable connection yielding rows to import."""

    id: str
    name: str
    source_type: str
    source_config: dict[str, Any] = Field(default_factory=dict)
    column_config: ColumnConfiguration = Field(default_factory=ColumnConfiguration)
    column_previews: list[ColumnPreview] = Field(default_factory=list)
    schedule: ScheduleConfiguration = Field(default_factory=ScheduleConfiguration)
    destination_type: str | None = None
    field_mappings: list[FieldMapping] = Field(default_factory=list)
    sync_status: SyncStatus = SyncStatus.IDLE
    is_active: bool = True
    last_sync_at: datetime | None = None
    next_sync_at: datetime | None = None
    retry_count: int = Field(default=0, ge=0)


class WriteResult(WireModel):
    """Outcome of a destination write call."""

    written: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)
