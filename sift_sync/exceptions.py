"""Custom exceptions for Sift_Sync."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:  # pragma: no cover - type checking only
    from sift_sync.tasks.error_handling import SyncErrorReport


class SiftSyncError(Exception):
    """Base exception for all Sift_Sync errors."""

    pass


class ConfigurationError(SiftSyncError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class SyncConnectionError(SiftSyncError):
    """Raised when a source or destination cannot be reached."""

    pass


class SourceConnectionError(SyncConnectionError):
    """Raised when rows cannot be read from the source system."""

    pass


class DestinationUnavailableError(SyncConnectionError):
    """Raised when the destination writer cannot accept records."""

    pass


class SyncTimeoutError(SiftSyncError):
    """Raised when a sync attempt exceeds its wall-clock budget."""

    def __init__(self, data_source_id: str, budget_seconds: float) -> None:
        super().__init__(
            f"Sync for data source '{data_source_id}' exceeded its "
            f"{budget_seconds:g}s time budget"
        )
        self.data_source_id = data_source_id
        self.budget_seconds = budget_seconds


class SyncCancelledError(SiftSyncError):
    """Raised when an in-flight sync is cancelled by the caller."""

    pass


class SyncAlreadyRunningError(SiftSyncError):
    """Raised when a sync is triggered for a data source that is already syncing."""

    def __init__(self, data_source_id: str, lease_expires_at: datetime | None = None) -> None:
        message = f"A sync is already running for data source '{data_source_id}'."
        if lease_expires_at is not None:
            message = f"{message} Lease held until {lease_expires_at.isoformat()}"
        super().__init__(message)
        self.data_source_id = data_source_id
        self.lease_expires_at = lease_expires_at


class SyncLeaseLostError(SiftSyncError):
    """Raised when a running sync can no longer renew its data source lease."""

    def __init__(self, data_source_id: str) -> None:
        super().__init__(f"Sync lease for data source '{data_source_id}' was lost to another run")
        self.data_source_id = data_source_id


class DataSourceNotFoundError(SiftSyncError):
    """Raised when a data source id is unknown to the config store."""

    pass


class DestinationSchemaNotFoundError(SiftSyncError):
    """Raised when requested destination schema is not registered."""

    pass


class SourceReaderNotFoundError(SiftSyncError):
    """Raised when no source reader is registered for a source type."""

    pass


class InvalidStatusTransition(SiftSyncError):
    """Raised when a data source sync status change is not a legal transition."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Illegal sync status transition: {current} -> {requested}")
        self.current = current
        self.requested = requested


class SyncLogFinalizedError(SiftSyncError):
    """Raised when a completed sync log is modified."""

    pass


class SyncExecutionError(SiftSyncError):
    """Raised by task wrappers after a sync failure has been reported."""

    def __init__(self, report: SyncErrorReport, *, original_error: Exception | None = None) -> None:
        super().__init__(report.message)
        self.report = report
        self.original_error = original_error

    def as_dict(self) -> dict[str, Any]:
        """Return a serializable representation of the sync error for logging/tests."""

        return {
            "message": self.report.message,
            "error_type": self.report.error_type,
            "classification": self.report.classification,
            "retryable": self.report.retryable,
        }
