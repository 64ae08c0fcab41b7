"""Prometheus metrics definitions for Sift_Sync."""

from __future__ import annotations

from collections.abc import Iterable

from prometheus_client import Counter, Gauge, Histogram

from ..schemas.sync import SyncStatus

SYNC_ATTEMPTS = Counter(
    "sync_attempts_total",
    "Total sync attempts by final attempt status.",
    labelnames=("status",),
)

SYNC_ERRORS = Counter(
    "sync_errors_total",
    "Total attempt-level sync errors grouped by classification.",
    labelnames=("classification",),
)

SYNC_RETRIES = Counter(
    "sync_retries_total",
    "Total sync retries scheduled after a retryable failure.",
)

SYNC_REJECTED = Counter(
    "sync_rejected_total",
    "Sync triggers rejected because the data source was already syncing.",
)

SYNC_ROWS = Counter(
    "sync_rows_total",
    "Rows handled by sync attempts grouped by outcome.",
    labelnames=("outcome",),
)

SYNC_DURATION = Histogram(
    "sync_duration_seconds",
    "Distribution of sync attempt durations in seconds.",
    buckets=(0.1, 0.5, 1, 5, 15, 30, 60, 300, 900, 1800, 3600),
)

SYNC_ACTIVE = Gauge(
    "sync_active",
    "Number of sync runs currently holding a data source lease in this process.",
)

SCHEDULER_DISPATCHED = Counter(
    "scheduler_dispatched_total",
    "Data sources dispatched by the scheduler tick.",
)

DATA_SOURCES = Gauge(
    "data_sources",
    "Configured data sources by current sync status.",
    labelnames=("status",),
)


def record_sync_attempt(status: str) -> None:
    """Increment the sync attempts counter with the supplied status."""

    SYNC_ATTEMPTS.labels(status=status).inc()


def record_sync_error(classification: str) -> None:
    SYNC_ERRORS.labels(classification=classification).inc()


def record_sync_retry() -> None:
    SYNC_RETRIES.inc()


def record_sync_rejected() -> None:
    SYNC_REJECTED.inc()


def record_rows(outcome: str, count: int) -> None:
    """
    Add ``count`` rows to the row outcome counter.

    Args:
        outcome: One of processed, failed, dropped, written
        count: Number of rows to add; non-positive counts are ignored
    """
    if count > 0:
        SYNC_ROWS.labels(outcome=outcome).inc(count)


def observe_sync_duration(duration_seconds: float) -> None:
    """Record the sync attempt duration in seconds."""

    SYNC_DURATION.observe(max(duration_seconds, 0.0))


def increment_active_syncs() -> None:
    SYNC_ACTIVE.inc()


def decrement_active_syncs() -> None:
    SYNC_ACTIVE.dec()


def record_scheduler_dispatch(count: int) -> None:
    if count > 0:
        SCHEDULER_DISPATCHED.inc(count)


def record_data_source_statuses(statuses: Iterable[SyncStatus | str]) -> None:
    """Set the per-status data source gauge; statuses with no data source read 0."""

    counts = {status.value: 0 for status in SyncStatus}
    for status in statuses:
        counts[SyncStatus(status).value] += 1
    for status, count in counts.items():
        DATA_SOURCES.labels(status=status).set(count)
