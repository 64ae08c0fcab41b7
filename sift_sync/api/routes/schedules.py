"""Schedule validation endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

from ...scheduling.schedule import (
    describe_schedule,
    get_common_timezones,
    get_frequency_options,
    next_run,
    validate_schedule,
)
from ...schemas.api import ScheduleValidationRequest, ScheduleValidationResponse

router = APIRouter()


@router.post("/schedules/validate", response_model=ScheduleValidationResponse)
def validate(request: ScheduleValidationRequest) -> ScheduleValidationResponse:
    """Validate a schedule and preview its description and next run."""

    schedule = request.schedule
    errors = validate_schedule(schedule)
    if errors:
        return ScheduleValidationResponse(valid=False, errors=errors)

    now = request.now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return ScheduleValidationResponse(
        valid=True,
        description=describe_schedule(schedule),
        next_run=next_run(schedule, now),
    )


@router.get("/schedules/options")
def options() -> dict[str, Any]:
    return {
        "frequencies": get_frequency_options(),
        "timezones": get_common_timezones(),
    }
