"""SQLAlchemy model definitions for data sources, sync logs and imported records."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class DataSourceRecord(Base):
    """Database representation of a configured data source and its sync lease."""

    __tablename__ = "data_sources"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    source_type: Mapped[str] = mapped_column(String(64), nullable=False)
    source_config: Mapped[dict[str, object]] = mapped_column(JSON, nullable=False, default=dict)
    column_config: Mapped[dict[str, object]] = mapped_column(JSON, nullable=False, default=dict)
    column_previews: Mapped[list[object]] = mapped_column(JSON, nullable=False, default=list)
    schedule: Mapped[dict[str, object]] = mapped_column(JSON, nullable=False, default=dict)
    destination_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    field_mappings: Mapped[list[object]] = mapped_column(JSON, nullable=False, default=list)
    sync_status: Mapped[str] = mapped_column(String(16), nullable=False, default="idle", index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_sync_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lease_owner: Mapped[str | None] = mapped_column(String(64), nullable=True)
    lease_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancel_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""

        return (
            f"<DataSourceRecord id={self.id} type={self.source_type} "
            f"status={self.sync_status} destination={self.destination_type}>"
        )


class SyncLogRecord(Base):
    """Database representation of a single sync attempt."""

    __tablename__ = "sync_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    data_source_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("data_sources.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    attempt: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    records_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_dropped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_written: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    errors: Mapped[list[object]] = mapped_column(JSON, nullable=False, default=list)
    cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return (
            f"<SyncLogRecord id={self.id} data_source={self.data_source_id} "
            f"attempt={self.attempt} status={self.status}>"
        )


class ImportedRecord(Base):
    """Destination row written by the SQL record writer, unique per stable key."""

    __tablename__ = "imported_records"
    __table_args__ = (
        UniqueConstraint(
            "data_source_id", "destination_type", "record_key", name="uq_imported_records_key"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    data_source_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    destination_type: Mapped[str] = mapped_column(String(64), nullable=False)
    record_key: Mapped[str] = mapped_column(String(128), nullable=False)
    payload: Mapped[dict[str, object]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
