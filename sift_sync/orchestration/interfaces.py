"""Collaborator ports consumed by the sync orchestrator."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from ..schemas.sync import DataSource, SyncLog, SyncStatus, WriteResult


@runtime_checkable
class SourceReader(Protocol):
    """Reads raw rows from an external system."""

    def read_sample(self, source_config: Mapping[str, Any], limit: int) -> list[dict[str, Any]]:
        ...

    def read_all(self, source_config: Mapping[str, Any]) -> Iterable[dict[str, Any]]:
        ...


@runtime_checkable
class DestinationWriter(Protocol):
    """Writes mapped records with upsert semantics."""

    def write(self, records: Sequence[Mapping[str, Any]]) -> WriteResult:
        ...


class ConfigStore(Protocol):
    """Persistence for data sources, sync leases and sync logs."""

    def get_data_source(self, data_source_id: str) -> DataSource:
        ...

    def list_data_sources(self) -> list[DataSource]:
        ...

    def save_data_source(self, data_source: DataSource) -> DataSource:
        ...

    def update_data_source(self, data_source_id: str, **changes: Any) -> DataSource:
        """Update fields other than ``sync_status``."""
        ...

    def transition_status(self, data_source_id: str, target: SyncStatus) -> DataSource:
        """Move the data source to ``target``, rejecting illegal transitions."""
        ...

    def acquire_sync_lease(
        self, data_source_id: str, owner: str, ttl_seconds: int, now: datetime
    ) -> bool:
        ...

    def renew_sync_lease(
        self, data_source_id: str, owner: str, ttl_seconds: int, now: datetime
    ) -> bool:
        """Extend a lease still held by ``owner``; False when it has been lost."""
        ...

    def release_sync_lease(self, data_source_id: str, owner: str) -> None:
        ...

    def request_cancellation(self, data_source_id: str) -> bool:
        """Flag the running sync for cancellation; False when nothing holds the lease."""
        ...

    def cancellation_requested(self, data_source_id: str) -> bool:
        ...

    def append_sync_log(self, log: SyncLog) -> SyncLog:
        ...

    def finalize_sync_log(self, log: SyncLog) -> SyncLog:
        ...

    def list_sync_logs(self, data_source_id: str, limit: int = 50) -> list[SyncLog]:
        """Return logs newest first."""
        ...


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Clock backed by the system UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
