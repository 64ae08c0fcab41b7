"""Celery tasks running syncs and the scheduler tick."""

from __future__ import annotations

from typing import Any

from ..exceptions import SiftSyncError, SyncAlreadyRunningError, SyncExecutionError
from ..models.repository import SqlConfigStore
from ..orchestration.orchestrator import SyncOrchestrator
from ..orchestration.scheduler import SyncScheduler
from ..utils.config import ensure_runtime_configuration, get_settings
from ..utils.logging import setup_logger
from .celery_app import celery_app
from .error_handling import build_error_report

logger = setup_logger(__name__, context={"component": "CeleryTasks"})


def build_orchestrator() -> SyncOrchestrator:
    """Create an orchestrator backed by the SQL config store."""

    return SyncOrchestrator(SqlConfigStore())


def run_sync(data_source_id: str, orchestrator: SyncOrchestrator | None = None) -> dict[str, Any]:
    """Run one sync for a Celery worker and return a JSON-safe summary.

    A trigger that finds the data source already syncing is coalesced into the
    running sync rather than treated as a failure.
    """

    ensure_runtime_configuration(get_settings())
    orchestrator = orchestrator or build_orchestrator()
    task_logger = logger.bind(data_source_id=data_source_id)

    try:
        log = orchestrator.run_sync_once(data_source_id)
    except SyncAlreadyRunningError as exc:
        task_logger.info("Sync trigger coalesced into running sync", extra={"status": "coalesced"})
        return {
            "status": "coalesced",
            "data_source_id": data_source_id,
            "message": str(exc),
            "sync_log": None,
        }
    except Exception as exc:
        report = build_error_report(exc, data_source_id=data_source_id)
        if isinstance(exc, SiftSyncError):
            task_logger.error("Sync task failed: %s", report.message, extra={"status": "error"})
        else:
            task_logger.exception("Unexpected error during sync task", extra={"status": "error"})
        raise SyncExecutionError(report, original_error=exc) from exc

    return {
        "status": log.status,
        "data_source_id": data_source_id,
        "message": log.error_message or "Sync completed",
        "sync_log": log.to_wire(),
    }


def run_scheduler_tick(scheduler: SyncScheduler | None = None) -> dict[str, Any]:
    """Dispatch every due data source once."""

    scheduler = scheduler or SyncScheduler(SqlConfigStore())
    dispatched = scheduler.trigger_if_due()
    return {"dispatched": dispatched, "count": len(dispatched)}


@celery_app.task(name="sift_sync.run_sync")
def run_sync_task(data_source_id: str) -> dict[str, Any]:
    """Run a sync for ``data_source_id``."""

    return run_sync(data_source_id)


@celery_app.task(name="sift_sync.scheduler_tick")
def scheduler_tick_task() -> dict[str, Any]:
    """Evaluate schedules and queue due syncs."""

    return run_scheduler_tick()


__all__ = [
    "build_orchestrator",
    "run_scheduler_tick",
    "run_sync",
    "run_sync_task",
    "scheduler_tick_task",
]
