"""SQL-backed config store for data sources, sync leases and sync logs."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session, sessionmaker

from ..exceptions import DataSourceNotFoundError, SyncLogFinalizedError
from ..orchestration.state import ensure_transition
from ..schemas.sync import DataSource, SyncLog, SyncStatus
from .base import as_utc, session_scope
from .records import DataSourceRecord, SyncLogRecord

_IMMUTABLE_FIELDS = frozenset({"id", "sync_status"})


def _to_model(record: DataSourceRecord) -> DataSource:
    return DataSource.model_validate(
        {
            "id": record.id,
            "name": record.name,
            "source_type": record.source_type,
            "source_config": record.source_config or {},
            "column_config": record.column_config or {},
            "column_previews": record.column_previews or [],
            "schedule": record.schedule or {},
            "destination_type": record.destination_type,
            "field_mappings": record.field_mappings or [],
            "sync_status": record.sync_status,
            "is_active": record.is_active,
            "last_sync_at": as_utc(record.last_sync_at),
            "next_sync_at": as_utc(record.next_sync_at),
            "retry_count": record.retry_count,
        }
    )


def _apply(record: DataSourceRecord, data_source: DataSource, *, include_status: bool) -> None:
    payload = data_source.model_dump(mode="json", by_alias=True)
    record.name = data_source.name
    record.source_type = data_source.source_type
    record.source_config = payload["source_config"]
    record.column_config = payload["column_config"]
    record.column_previews = payload["column_previews"]
    record.schedule = payload["schedule"]
    record.destination_type = data_source.destination_type
    record.field_mappings = payload["field_mappings"]
    record.is_active = data_source.is_active
    record.last_sync_at = as_utc(data_source.last_sync_at)
    record.next_sync_at = as_utc(data_source.next_sync_at)
    record.retry_count = data_source.retry_count
    if include_status:
        record.sync_status = data_source.sync_status.value


def _to_log(record: SyncLogRecord) -> SyncLog:
    return SyncLog(
        id=record.id,
        data_source_id=record.data_source_id,
        status=record.status,
        attempt=record.attempt,
        started_at=as_utc(record.started_at),
        completed_at=as_utc(record.completed_at),
        records_processed=record.records_processed,
        records_failed=record.records_failed,
        records_dropped=record.records_dropped,
        records_written=record.records_written,
        error_message=record.error_message,
        errors=list(record.errors or []),
        cancelled=record.cancelled,
    )


class SqlConfigStore:
    """Config store persisting data sources and sync logs with SQLAlchemy.

    The sync lease is taken with a conditional UPDATE so several orchestrator
    processes sharing one database never run the same data source at once.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory

    def _load(self, session: Session, data_source_id: str) -> DataSourceRecord:
        record = session.get(DataSourceRecord, data_source_id)
        if record is None:
            raise DataSourceNotFoundError(f"Data source '{data_source_id}' not found")
        return record

    def get_data_source(self, data_source_id: str) -> DataSource:
        with session_scope(self._session_factory) as session:
            return _to_model(self._load(session, data_source_id))

    def list_data_sources(self) -> list[DataSource]:
        with session_scope(self._session_factory) as session:
            records = session.scalars(select(DataSourceRecord).order_by(DataSourceRecord.id))
            return [_to_model(record) for record in records]

    def save_data_source(self, data_source: DataSource) -> DataSource:
        with session_scope(self._session_factory) as session:
            record = session.get(DataSourceRecord, data_source.id)
            if record is None:
                record = DataSourceRecord(id=data_source.id)
                session.add(record)
            _apply(record, data_source, include_status=True)
            session.flush()
            return _to_model(record)

    def update_data_source(self, data_source_id: str, **changes: Any) -> DataSource:
        blocked = _IMMUTABLE_FIELDS.intersection(changes)
        if blocked:
            raise ValueError(f"Fields cannot be updated directly: {', '.join(sorted(blocked))}")
        with session_scope(self._session_factory) as session:
            record = self._load(session, data_source_id)
            current = _to_model(record)
            updated = DataSource.model_validate({**current.model_dump(), **changes})
            _apply(record, updated, include_status=False)
            session.flush()
            return _to_model(record)

    def transition_status(self, data_source_id: str, target: SyncStatus) -> DataSource:
        with session_scope(self._session_factory) as session:
            record = session.scalars(
                select(DataSourceRecord)
                .where(DataSourceRecord.id == data_source_id)
                .with_for_update()
            ).one_or_none()
            if record is None:
                raise DataSourceNotFoundError(f"Data source '{data_source_id}' not found")
            ensure_transition(SyncStatus(record.sync_status), target)
            record.sync_status = SyncStatus(target).value
            session.flush()
            return _to_model(record)

    def acquire_sync_lease(
        self, data_source_id: str, owner: str, ttl_seconds: int, now: datetime
    ) -> bool:
        now_utc = as_utc(now)
        with session_scope(self._session_factory) as session:
            self._load(session, data_source_id)
            result = session.execute(
                update(DataSourceRecord)
                .where(DataSourceRecord.id == data_source_id)
                .where(
                    or_(
                        DataSourceRecord.lease_owner.is_(None),
                        DataSourceRecord.lease_expires_at < now_utc,
                    )
                )
                .values(
                    lease_owner=owner,
                    lease_expires_at=now_utc + timedelta(seconds=ttl_seconds),
                    cancel_requested=False,
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def renew_sync_lease(
        self, data_source_id: str, owner: str, ttl_seconds: int, now: datetime
    ) -> bool:
        now_utc = as_utc(now)
        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(DataSourceRecord)
                .where(DataSourceRecord.id == data_source_id)
                .where(DataSourceRecord.lease_owner == owner)
                .where(DataSourceRecord.lease_expires_at >= now_utc)
                .values(lease_expires_at=now_utc + timedelta(seconds=ttl_seconds))
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def release_sync_lease(self, data_source_id: str, owner: str) -> None:
        with session_scope(self._session_factory) as session:
            session.execute(
                update(DataSourceRecord)
                .where(DataSourceRecord.id == data_source_id)
                .where(DataSourceRecord.lease_owner == owner)
                .values(lease_owner=None, lease_expires_at=None, cancel_requested=False)
                .execution_options(synchronize_session=False)
            )

    def request_cancellation(self, data_source_id: str) -> bool:
        with session_scope(self._session_factory) as session:
            self._load(session, data_source_id)
            result = session.execute(
                update(DataSourceRecord)
                .where(DataSourceRecord.id == data_source_id)
                .where(DataSourceRecord.lease_owner.is_not(None))
                .values(cancel_requested=True)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def cancellation_requested(self, data_source_id: str) -> bool:
        with session_scope(self._session_factory) as session:
            flag = session.scalar(
                select(DataSourceRecord.cancel_requested).where(DataSourceRecord.id == data_source_id)
            )
            return bool(flag)

    def append_sync_log(self, log: SyncLog) -> SyncLog:
        with session_scope(self._session_factory) as session:
            self._load(session, log.data_source_id)
            record = SyncLogRecord(
                id=log.id or str(uuid4()),
                data_source_id=log.data_source_id,
                status=log.status,
                attempt=log.attempt,
                started_at=as_utc(log.started_at),
                completed_at=as_utc(log.completed_at),
                records_processed=log.records_processed,
                records_failed=log.records_failed,
                records_dropped=log.records_dropped,
                records_written=log.records_written,
                error_message=log.error_message,
                errors=list(log.errors),
                cancelled=log.cancelled,
            )
            session.add(record)
            session.flush()
            return _to_log(record)

    def finalize_sync_log(self, log: SyncLog) -> SyncLog:
        if log.id is None:
            raise ValueError("Sync log must be appended before it is finalized")
        with session_scope(self._session_factory) as session:
            record = session.get(SyncLogRecord, log.id)
            if record is None:
                raise ValueError(f"Sync log '{log.id}' not found")
            if record.completed_at is not None:
                raise SyncLogFinalizedError(f"Sync log '{log.id}' is already finalized")
            record.status = log.status
            record.completed_at = as_utc(log.completed_at)
            record.records_processed = log.records_processed
            record.records_failed = log.records_failed
            record.records_dropped = log.records_dropped
            record.records_written = log.records_written
            record.error_message = log.error_message
            record.errors = list(log.errors)
            record.cancelled = log.cancelled
            session.flush()
            return _to_log(record)

    def list_sync_logs(self, data_source_id: str, limit: int = 50) -> list[SyncLog]:
        with session_scope(self._session_factory) as session:
            records = session.scalars(
                select(SyncLogRecord)
                .where(SyncLogRecord.data_source_id == data_source_id)
                .order_by(SyncLogRecord.started_at.desc(), SyncLogRecord.attempt.desc())
                .limit(limit)
            )
            return [_to_log(record) for record in records]
