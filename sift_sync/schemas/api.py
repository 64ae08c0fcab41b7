"""Request and response bodies for the HTTP surface."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from .schedule import ScheduleConfiguration


class AnalyzeRequest(BaseModel):
    """Rows to analyze, supplied inline or read from a configured source."""

    rows: list[dict[str, Any]] | None = None
    column_names: list[str] | None = None
    source_type: str | None = None
    source_config: dict[str, Any] = Field(default_factory=dict)
    sample_limit: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _require_rows_or_source(self) -> AnalyzeRequest:
        if self.rows is None and not self.source_type:
            raise ValueError("Provide either 'rows' or 'source_type' with 'source_config'")
        return self


class ScheduleValidationResponse(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
    description: str | None = None
    next_run: datetime | None = None


class ScheduleValidationRequest(BaseModel):
    schedule: ScheduleConfiguration
    now: datetime | None = None


class SyncTriggerResponse(BaseModel):
    status: str
    data_source_id: str
    task_id: str | None = None


class CancelResponse(BaseModel):
    data_source_id: str
    cancelled: bool
