"""Celery application configuration for Sift_Sync."""

from __future__ import annotations

from celery import Celery

from ..utils.config import get_settings


def _resolve_redis_url() -> str:
    """Return the Redis URL configured for the application."""

    settings = get_settings()
    return settings.redis_url or "redis://localhost:6379/0"


celery_app = Celery(
    "sift_sync",
    broker=_resolve_redis_url(),
    backend=_resolve_redis_url(),
    include=["sift_sync.tasks.sync"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    worker_hijack_root_logger=False,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "sift-sync-scheduler-tick": {
            "task": "sift_sync.scheduler_tick",
            "schedule": get_settings().scheduler_poll_seconds,
        }
    },
)
