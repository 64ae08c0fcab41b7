"""Schedule computation: validation, descriptions, next runs and retry backoff."""
from .cron import CronExpression, CronSyntaxError
from .schedule import (
    calculate_next_retry_time,
    calculate_retry_delay,
    describe_schedule,
    get_common_timezones,
    get_frequency_options,
    next_run,
    should_retry,
    validate_schedule,
)

__all__ = [
    "CronExpression",
    "CronSyntaxError",
    "calculate_next_retry_time",
    "calculate_retry_delay",
    "describe_schedule",
    "get_common_timezones",
    "get_frequency_options",
    "next_run",
    "should_retry",
    "validate_schedule",
]
