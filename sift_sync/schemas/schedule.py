"""Pydantic schema for data source schedule configuration.

The model accepts incomplete or inconsistent combinations on purpose so the
scheduling module can report every problem as a human-readable message.
"""

from __future__ import annotations

from typing import Literal

from pydantic import field_validator

from .base import WireModel

Frequency = Literal["manual", "hourly", "daily", "weekly", "monthly", "cron"]


class ScheduleConfiguration(WireModel):
    """When a data source syncs and how failed attempts are retried."""

    frequency: Frequency = "manual"
    time: str | None = None
    timezone: str | None = None
    day_of_week: int | None = None
    day_of_month: int | None = None
    cron_expression: str | None = None
    retry_on_failure: bool = True
    max_retries: int = 3
    retry_delay_minutes: int = 15

    @field_validator("time", "timezone", "cron_expression", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value
