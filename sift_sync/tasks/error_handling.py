"""Structured error handling utilities for sync attempts and Celery tasks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..exceptions import (
    ConfigurationError,
    DataSourceNotFoundError,
    DestinationSchemaNotFoundError,
    DestinationUnavailableError,
    SiftSyncError,
    SourceConnectionError,
    SourceReaderNotFoundError,
    SyncAlreadyRunningError,
    SyncCancelledError,
    SyncConnectionError,
    SyncLeaseLostError,
    SyncTimeoutError,
)


@dataclass(slots=True)
class SyncErrorReport:
    """Structured payload describing a failed sync attempt."""

    data_source_id: str
    attempt: int
    sync_log_id: str | None
    error_type: str
    message: str
    classification: str
    retryable: bool
    timestamp: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return a serializable dictionary representation of the error report."""

        payload: dict[str, Any] = {
            "data_source_id": self.data_source_id,
            "attempt": self.attempt,
            "sync_log_id": self.sync_log_id,
            "error_type": self.error_type,
            "message": self.message,
            "classification": self.classification,
            "retryable": self.retryable,
            "timestamp": self.timestamp,
        }
        if self.details:
            payload["details"] = self.details
        return payload


def build_error_report(
    exc: BaseException,
    *,
    data_source_id: str,
    attempt: int = 1,
    sync_log_id: str | None = None,
    retryable_override: bool | None = None,
    extra_details: dict[str, Any] | None = None,
) -> SyncErrorReport:
    """Construct a :class:`SyncErrorReport` describing the supplied exception."""

    classification, default_retryable = classify_exception(exc)
    retryable = retryable_override if retryable_override is not None else default_retryable

    details: dict[str, Any] = {
        "args": [repr(arg) for arg in getattr(exc, "args", ())],
        "exception_module": exc.__class__.__module__,
    }
    if isinstance(exc, ConfigurationError) and exc.errors:
        details["errors"] = list(exc.errors)
    if extra_details:
        details.update(extra_details)

    message = str(exc) if str(exc) else exc.__class__.__name__

    return SyncErrorReport(
        data_source_id=data_source_id,
        attempt=attempt,
        sync_log_id=sync_log_id,
        error_type=exc.__class__.__name__,
        message=message,
        classification=classification,
        retryable=retryable,
        timestamp=datetime.now(timezone.utc).isoformat(),
        details=details,
    )


def classify_exception(exc: BaseException) -> tuple[str, bool]:
    """Return a tuple of (classification, retryable) for a given exception."""

    if isinstance(exc, SyncAlreadyRunningError):
        return "already_running", False
    if isinstance(
        exc,
        (
            ConfigurationError,
            DataSourceNotFoundError,
            DestinationSchemaNotFoundError,
            SourceReaderNotFoundError,
        ),
    ):
        return "configuration", False
    if isinstance(exc, SourceConnectionError):
        return "source_connection", True
    if isinstance(exc, DestinationUnavailableError):
        return "destination_connection", True
    if isinstance(exc, SyncConnectionError):
        return "connection", True
    if isinstance(exc, SyncTimeoutError):
        return "timeout", True
    if isinstance(exc, SyncCancelledError):
        return "cancelled", False
    if isinstance(exc, SyncLeaseLostError):
        return "lease_lost", False
    if isinstance(exc, SiftSyncError):
        return "application", False
    return "unexpected", False
