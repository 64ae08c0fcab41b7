"""Retry policy helpers for sync execution."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..exceptions import SyncConnectionError, SyncTimeoutError
from ..schemas.schedule import ScheduleConfiguration
from ..scheduling.schedule import MAX_RETRY_DELAY_MINUTES, calculate_retry_delay

DEFAULT_RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (SyncConnectionError, SyncTimeoutError)


@dataclass(slots=True)
class SyncRetryPolicy:
    """Encapsulates retry behaviour for one data source's sync attempts."""

    enabled: bool
    max_retries: int
    base_delay_minutes: int
    max_delay_minutes: int = MAX_RETRY_DELAY_MINUTES
    retryable_exceptions: tuple[type[Exception], ...] = DEFAULT_RETRYABLE_EXCEPTIONS

    def __post_init__(self) -> None:
        """Validate policy boundaries to avoid misconfiguration."""

        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.base_delay_minutes < 1:
            raise ValueError("base_delay_minutes must be at least 1")
        if self.max_delay_minutes < self.base_delay_minutes:
            raise ValueError("max_delay_minutes must be >= base_delay_minutes")

    @property
    def max_attempts(self) -> int:
        """Initial attempt plus every allowed retry."""

        return 1 + self.max_retries if self.enabled else 1

    def is_retryable(self, exc: BaseException) -> bool:
        """Return True when the supplied exception is eligible for retry."""

        if not self.enabled:
            return False
        return isinstance(exc, self.retryable_exceptions)

    def delay_minutes(self, attempt: int) -> int:
        """Delay after the ``attempt``-th failure (1-based)."""

        return min(calculate_retry_delay(attempt, self.base_delay_minutes), self.max_delay_minutes)

    def delay_seconds(self, attempt: int) -> float:
        return float(self.delay_minutes(attempt) * 60)

    def to_dict(self) -> dict[str, object]:
        """Return a serializable representation for logging or persistence."""

        return {
            "enabled": self.enabled,
            "max_retries": self.max_retries,
            "max_attempts": self.max_attempts,
            "base_delay_minutes": self.base_delay_minutes,
            "max_delay_minutes": self.max_delay_minutes,
            "retryable_exceptions": [exc.__name__ for exc in self.retryable_exceptions],
        }

    @classmethod
    def from_schedule(
        cls,
        schedule: ScheduleConfiguration,
        *,
        retryable_exceptions: Sequence[type[Exception]] | None = None,
    ) -> SyncRetryPolicy:
        """Build a policy from a schedule's retry fields, clamping them to sane bounds."""

        exceptions: tuple[type[Exception], ...]
        if retryable_exceptions:
            exceptions = tuple(retryable_exceptions)
        else:
            exceptions = DEFAULT_RETRYABLE_EXCEPTIONS

        base_delay = min(max(schedule.retry_delay_minutes, 1), MAX_RETRY_DELAY_MINUTES)
        return cls(
            enabled=schedule.retry_on_failure,
            max_retries=max(schedule.max_retries, 0),
            base_delay_minutes=base_delay,
            retryable_exceptions=exceptions,
        )
