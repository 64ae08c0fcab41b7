"""Five-field cron expressions evaluated in an IANA timezone.

Fields are parsed with Celery's ``crontab_parser``. Day-of-week uses 0 for
Sunday and accepts three-letter names. When both day-of-month and day-of-week
are restricted, a day matches if either field matches.

Local wall-clock times are resolved with ``fold=0``: a time inside a
spring-forward gap lands after the gap, shifted by the gap length, and an
ambiguous fall-back time fires once, at its first occurrence.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from celery.schedules import ParseException, crontab_parser

# Leap-day schedules need up to eight years to recur.
MAX_SEARCH_DAYS = 366 * 8 + 2

_FIELDS: tuple[tuple[str, int, int], ...] = (
    ("minute", 60, 0),
    ("hour", 24, 0),
    ("day of month", 31, 1),
    ("month", 12, 1),
    ("day of week", 7, 0),
)


class CronSyntaxError(ValueError):
    """Raised when a cron expression cannot be parsed."""


@dataclass(frozen=True)
class CronExpression:
    expression: str
    minutes: tuple[int, ...]
    hours: tuple[int, ...]
    days_of_month: frozenset[int]
    months: frozenset[int]
    days_of_week: frozenset[int]
    day_of_month_restricted: bool
    day_of_week_restricted: bool

    @classmethod
    def parse(cls, expression: str) -> CronExpression:
        fields = expression.split()
        if len(fields) != 5:
            raise CronSyntaxError(
                f"expected 5 fields (minute hour day-of-month month day-of-week), got {len(fields)}"
            )

        parsed: list[set[int]] = []
        for text, (label, max_, min_) in zip(fields, _FIELDS):
            try:
                values = crontab_parser(max_, min_).parse(text.lower())
            except (ValueError, ParseException) as exc:
                raise CronSyntaxError(f"invalid {label} field '{text}': {exc}") from exc
            # Older Celery releases accept the bound itself (minute 60, weekday 7).
            upper = min_ + max_ - 1
            out_of_range = sorted(value for value in values if not min_ <= value <= upper)
            if out_of_range:
                raise CronSyntaxError(
                    f"invalid {label} field '{text}': {out_of_range[0]} is outside {min_}-{upper}"
                )
            parsed.append(values)

        minutes, hours, days_of_month, months, days_of_week = parsed
        return cls(
            expression=" ".join(fields),
            minutes=tuple(sorted(minutes)),
            hours=tuple(sorted(hours)),
            days_of_month=frozenset(days_of_month),
            months=frozenset(months),
            days_of_week=frozenset(days_of_week),
            day_of_month_restricted=not fields[2].startswith("*"),
            day_of_week_restricted=not fields[4].startswith("*"),
        )

    def matches_date(self, day: date) -> bool:
        if day.month not in self.months:
            return False
        dom_match = day.day in self.days_of_month
        # isoweekday: Monday=1 .. Sunday=7
        dow_match = day.isoweekday() % 7 in self.days_of_week
        if self.day_of_month_restricted and self.day_of_week_restricted:
            return dom_match or dow_match
        return dom_match and dow_match

    def next_after(self, now_utc: datetime, tz: tzinfo) -> datetime | None:
        """Return the first firing instant strictly after ``now_utc``, in UTC.

        Returns ``None`` when the expression never fires (``0 0 30 2 *``).
        """

        if now_utc.tzinfo is None:
            now_utc = now_utc.replace(tzinfo=timezone.utc)
        day = now_utc.astimezone(tz).date()

        for _ in range(MAX_SEARCH_DAYS):
            if self.matches_date(day):
                candidates: list[datetime] = []
                for hour in self.hours:
                    for minute in self.minutes:
                        instant = resolve_local(datetime.combine(day, time(hour, minute)), tz)
                        if instant > now_utc:
                            candidates.append(instant)
                if candidates:
                    return min(candidates)
            day += timedelta(days=1)
        return None


def resolve_local(wall_time: datetime, tz: tzinfo) -> datetime:
    """Convert a naive local wall time to a UTC instant using ``fold=0``."""

    return wall_time.replace(tzinfo=tz, fold=0).astimezone(timezone.utc)
