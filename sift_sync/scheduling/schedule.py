"""Schedule validation, description and next-run computation."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..schemas.schedule import ScheduleConfiguration
from .cron import CronExpression, CronSyntaxError

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
MAX_RETRIES_LIMIT = 10
MAX_RETRY_DELAY_MINUTES = 1440
WALL_CLOCK_FREQUENCIES = ("daily", "weekly", "monthly")

FREQUENCY_OPTIONS: tuple[dict[str, str], ...] = (
    {"value": "manual", "label": "Manual", "description": "Only sync when triggered manually"},
    {"value": "hourly", "label": "Hourly", "description": "Sync at the top of every hour"},
    {"value": "daily", "label": "Daily", "description": "Sync once a day at a set time"},
    {"value": "weekly", "label": "Weekly", "description": "Sync once a week on a set day"},
    {"value": "monthly", "label": "Monthly", "description": "Sync once a month on a set day"},
    {"value": "cron", "label": "Custom (cron)", "description": "Sync on a custom cron expression"},
)

COMMON_TIMEZONES: tuple[dict[str, str], ...] = (
    {"value": "UTC", "label": "UTC"},
    {"value": "America/New_York", "label": "Eastern Time (US & Canada)"},
    {"value": "America/Chicago", "label": "Central Time (US & Canada)"},
    {"value": "America/Denver", "label": "Mountain Time (US & Canada)"},
    {"value": "America/Phoenix", "label": "Arizona"},
    {"value": "America/Los_Angeles", "label": "Pacific Time (US & Canada)"},
    {"value": "America/Anchorage", "label": "Alaska"},
    {"value": "Pacific/Honolulu", "label": "Hawaii"},
    {"value": "Europe/London", "label": "London"},
    {"value": "Europe/Paris", "label": "Paris"},
    {"value": "Europe/Berlin", "label": "Berlin"},
    {"value": "Asia/Tokyo", "label": "Tokyo"},
    {"value": "Asia/Kolkata", "label": "India"},
    {"value": "Australia/Sydney", "label": "Sydney"},
)


def load_timezone(name: str | None) -> ZoneInfo | None:
    """Return the ZoneInfo for ``name``, or None when it is unknown."""

    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def validate_schedule(config: ScheduleConfiguration) -> list[str]:
    """Return human-readable problems with ``config``; empty when valid."""

    errors: list[str] = []
    frequency = config.frequency

    if frequency in WALL_CLOCK_FREQUENCIES:
        if config.time is None:
            errors.append(f"Time is required for {frequency} schedules")
        elif not TIME_PATTERN.match(config.time):
            errors.append("Time must be in HH:MM 24-hour format")

    if frequency in (*WALL_CLOCK_FREQUENCIES, "cron"):
        if config.timezone is None:
            errors.append(f"Timezone is required for {frequency} schedules")
        elif load_timezone(config.timezone) is None:
            errors.append(f"Unknown timezone '{config.timezone}'")
    elif config.timezone is not None and load_timezone(config.timezone) is None:
        errors.append(f"Unknown timezone '{config.timezone}'")

    if frequency == "weekly":
        if config.day_of_week is None:
            errors.append("Day of week is required for weekly schedules")
        elif not 0 <= config.day_of_week <= 6:
            errors.append("Day of week must be between 0 (Sunday) and 6 (Saturday)")

    if frequency == "monthly":
        if config.day_of_month is None:
            errors.append("Day of month is required for monthly schedules")
        elif not 1 <= config.day_of_month <= 28:
            errors.append("Day of month must be between 1 and 28")

    if frequency == "cron":
        if config.cron_expression is None:
            errors.append("Cron expression is required for cron frequency")
        else:
            try:
                expression = CronExpression.parse(config.cron_expression)
            except CronSyntaxError as exc:
                errors.append(f"Invalid cron expression: {exc}")
            else:
                if expression.next_after(datetime(2000, 1, 1, tzinfo=timezone.utc), timezone.utc) is None:
                    errors.append(f"Cron expression '{config.cron_expression}' never fires")

    if config.retry_on_failure:
        if config.max_retries < 0:
            errors.append("Max retries cannot be negative")
        elif config.max_retries > MAX_RETRIES_LIMIT:
            errors.append(f"Max retries cannot exceed {MAX_RETRIES_LIMIT}")
        if config.retry_delay_minutes < 1:
            errors.append("Retry delay must be at least 1 minute")
        elif config.retry_delay_minutes > MAX_RETRY_DELAY_MINUTES:
            errors.append(f"Retry delay cannot exceed {MAX_RETRY_DELAY_MINUTES} minutes (24 hours)")

    return errors


def describe_schedule(config: ScheduleConfiguration) -> str:
    """Render a stable human description such as ``Daily at 02:00 UTC``."""

    tz_label = config.timezone or "UTC"
    at_time = config.time or "00:00"
    frequency = config.frequency

    if frequency == "hourly":
        return "Every hour"
    if frequency == "daily":
        return f"Daily at {at_time} {tz_label}"
    if frequency == "weekly":
        day = config.day_of_week
        day_name = DAY_NAMES[day] if day is not None and 0 <= day <= 6 else "?"
        return f"Weekly on {day_name} at {at_time} {tz_label}"
    if frequency == "monthly":
        return f"Monthly on day {config.day_of_month or 1} at {at_time} {tz_label}"
    if frequency == "cron":
        return f"Cron: {config.cron_expression or ''} ({tz_label})"
    return "Manual only"


def to_cron_expression(config: ScheduleConfiguration) -> str | None:
    """Express a frequency schedule as the equivalent cron expression."""

    if config.frequency == "cron":
        return config.cron_expression
    if config.frequency == "hourly":
        return "0 * * * *"

    match = TIME_PATTERN.match(config.time or "00:00")
    if match is None:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if config.frequency == "daily":
        return f"{minute} {hour} * * *"
    if config.frequency == "weekly":
        return f"{minute} {hour} * * {config.day_of_week if config.day_of_week is not None else 0}"
    if config.frequency == "monthly":
        return f"{minute} {hour} {config.day_of_month or 1} * *"
    return None


def next_run(config: ScheduleConfiguration, now_utc: datetime) -> datetime | None:
    """Return the next trigger instant strictly after ``now_utc``, in UTC.

    Manual schedules and configurations that cannot be evaluated return None.
    """

    if config.frequency == "manual":
        return None
    expression_text = to_cron_expression(config)
    if expression_text is None:
        return None
    tz = load_timezone(config.timezone or "UTC")
    if tz is None:
        return None
    try:
        expression = CronExpression.parse(expression_text)
    except CronSyntaxError:
        return None
    return expression.next_after(now_utc, tz)


def calculate_retry_delay(attempt: int, base_delay_minutes: int) -> int:
    """Exponential backoff in minutes: ``base * 2**(attempt - 1)``, capped at one day."""

    exponent = max(attempt, 1) - 1
    return min(base_delay_minutes * 2**exponent, MAX_RETRY_DELAY_MINUTES)


def calculate_next_retry_time(
    attempt: int, config: ScheduleConfiguration, now_utc: datetime
) -> datetime:
    return now_utc + timedelta(minutes=calculate_retry_delay(attempt, config.retry_delay_minutes))


def should_retry(attempt: int, config: ScheduleConfiguration) -> bool:
    """Return True when ``attempt`` failures still leave retry budget."""

    return config.retry_on_failure and attempt < config.max_retries


def get_frequency_options() -> list[dict[str, str]]:
    return [dict(option) for option in FREQUENCY_OPTIONS]


def get_common_timezones() -> list[dict[str, str]]:
    return [dict(option) for option in COMMON_TIMEZONES]
