"""Celery task package: retry policy, error reports and the sync tasks.

The Celery app lives in ``sift_sync.tasks.celery_app`` and loads the task
module itself, so importing the helpers here stays free of worker setup.
"""

from __future__ import annotations

from .error_handling import SyncErrorReport, build_error_report, classify_exception
from .policies import SyncRetryPolicy

__all__ = [
    "SyncErrorReport",
    "SyncRetryPolicy",
    "build_error_report",
    "classify_exception",
]
