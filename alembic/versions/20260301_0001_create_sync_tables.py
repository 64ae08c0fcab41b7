"""Create data_sources, sync_logs and imported_records tables."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op as alembic_op  # type: ignore[import-untyped]

revision = "20260301_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create sync configuration, sync log and destination tables."""

    alembic_op.create_table(
        "data_sources",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("source_type", sa.String(length=64), nullable=False),
        sa.Column("source_config", sa.JSON(), nullable=False),
        sa.Column("column_config", sa.JSON(), nullable=False),
        sa.Column("column_previews", sa.JSON(), nullable=False),
        sa.Column("schedule", sa.JSON(), nullable=False),
        sa.Column("destination_type", sa.String(length=64), nullable=True),
        sa.Column("field_mappings", sa.JSON(), nullable=False),
        sa.Column("sync_status", sa.String(length=16), nullable=False, server_default="idle"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lease_owner", sa.String(length=64), nullable=True),
        sa.Column("lease_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_requested", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    alembic_op.create_index("ix_data_sources_sync_status", "data_sources", ["sync_status"])
    alembic_op.create_index("ix_data_sources_next_sync_at", "data_sources", ["next_sync_at"])

    alembic_op.create_table(
        "sync_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "data_source_id",
            sa.String(length=64),
            sa.ForeignKey("data_sources.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("attempt", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("records_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("records_failed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("records_dropped", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("records_written", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("errors", sa.JSON(), nullable=False),
        sa.Column("cancelled", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    alembic_op.create_index("ix_sync_logs_data_source_id", "sync_logs", ["data_source_id"])
    alembic_op.create_index("ix_sync_logs_status", "sync_logs", ["status"])

    alembic_op.create_table(
        "imported_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("data_source_id", sa.String(length=64), nullable=False),
        sa.Column("destination_type", sa.String(length=64), nullable=False),
        sa.Column("record_key", sa.String(length=128), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "data_source_id", "destination_type", "record_key", name="uq_imported_records_key"
        ),
    )
    alembic_op.create_index(
        "ix_imported_records_data_source_id", "imported_records", ["data_source_id"]
    )


def downgrade() -> None:
    """Drop the sync tables and their indexes."""

    alembic_op.drop_index("ix_imported_records_data_source_id", table_name="imported_records")
    alembic_op.drop_table("imported_records")
    alembic_op.drop_index("ix_sync_logs_status", table_name="sync_logs")
    alembic_op.drop_index("ix_sync_logs_data_source_id", table_name="sync_logs")
    alembic_op.drop_table("sync_logs")
    alembic_op.drop_index("ix_data_sources_next_sync_at", table_name="data_sources")
    alembic_op.drop_index("ix_data_sources_sync_status", table_name="data_sources")
    alembic_op.drop_table("data_sources")
