"""Scheduler tick: dispatch syncs for data sources whose next run is due."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from ..monitoring.metrics import record_scheduler_dispatch
from ..scheduling.schedule import next_run, validate_schedule
from ..schemas.sync import SyncStatus
from ..utils.logging import setup_logger
from .interfaces import Clock, ConfigStore, SystemClock

logger = setup_logger(__name__, context={"component": "scheduler"})


def dispatch_via_celery(data_source_id: str) -> Any:
    """Queue the sync task on the Celery broker."""

    # Imported here: the task module depends on the orchestration package.
    from ..tasks.sync import run_sync_task

    return run_sync_task.delay(data_source_id)


class SyncScheduler:
    """Evaluate schedules on each tick and dispatch due data sources."""

    def __init__(
        self,
        store: ConfigStore,
        *,
        dispatch: Callable[[str], Any] = dispatch_via_celery,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.dispatch = dispatch
        self.clock = clock or SystemClock()

    def trigger_if_due(self, now_utc: datetime | None = None) -> list[str]:
        """Dispatch every active, idle-or-finished data source whose next run has passed.

        Returns:
            Ids of the data sources dispatched on this tick.
        """

        now = now_utc or self.clock.now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        triggered: list[str] = []
        for data_source in self.store.list_data_sources():
            schedule = data_source.schedule
            if not data_source.is_active or schedule.frequency == "manual":
                continue
            if data_source.sync_status == SyncStatus.SYNCING:
                continue

            errors = validate_schedule(schedule)
            if errors:
                logger.warning(
                    "Skipping data source with invalid schedule: %s",
                    "; ".join(errors),
                    extra={"data_source_id": data_source.id},
                )
                continue

            if data_source.next_sync_at is None:
                self.store.update_data_source(data_source.id, next_sync_at=next_run(schedule, now))
                continue
            if data_source.next_sync_at > now:
                continue

            self.dispatch(data_source.id)
            self.store.update_data_source(data_source.id, next_sync_at=next_run(schedule, now))
            triggered.append(data_source.id)
            logger.info(
                "Dispatched scheduled sync",
                extra={"data_source_id": data_source.id, "status": "dispatched"},
            )

        record_scheduler_dispatch(len(triggered))
        return triggered
