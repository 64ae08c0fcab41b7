"""Tests for destination writers."""

from __future__ import annotations

import hashlib
from datetime import date

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from sift_sync.destinations import (
    SqlRecordWriter,
    build_destination_writer,
    register_destination_writer,
)
from sift_sync.destinations import _WRITER_REGISTRY
from sift_sync.exceptions import DestinationUnavailableError
from sift_sync.models.base import session_scope
from sift_sync.models.records import ImportedRecord
from sift_sync.testing import InMemoryWriter


def _stored(data_source_id: str = "ds-members") -> dict[str, dict]:
    with session_scope() as session:
        rows = session.scalars(
            select(ImportedRecord).where(ImportedRecord.data_source_id == data_source_id)
        )
        return {row.record_key: row.payload for row in rows}


def test_rewriting_the_same_records_is_idempotent():
    writer = SqlRecordWriter("ds-members", "members")
    records = [
        {"email": "ada@example.com", "first_name": "Ada"},
        {"email": "grace@example.com", "first_name": "Grace"},
    ]

    assert writer.write(records).written == 2
    assert writer.write(records).written == 2

    assert sorted(_stored()) == ["ada@example.com", "grace@example.com"]


def test_existing_records_are_updated_in_place():
    writer = SqlRecordWriter("ds-members", "members")
    writer.write([{"email": "ada@example.com", "first_name": "Ada"}])

    writer.write([{"email": "ADA@example.com ", "first_name": "Augusta"}])

    assert _stored() == {"ada@example.com": {"email": "ADA@example.com ", "first_name": "Augusta"}}


def test_repeated_key_in_a_batch_is_written_once():
    writer = SqlRecordWriter("ds-members", "members")

    result = writer.write(
        [
            {"email": "ada@example.com", "first_name": "Ada"},
            {"email": "ada@example.com", "first_name": "Augusta"},
        ]
    )

    assert result.written == 1
    assert result.failed == 0
    assert _stored()["ada@example.com"]["first_name"] == "Augusta"


def test_dates_are_stored_as_text():
    writer = SqlRecordWriter("ds-visits", "visits", key_fields=["member_email", "visit_date"])

    writer.write([{"member_email": "ada@example.com", "visit_date": date(2024, 1, 5)}])

    assert _stored("ds-visits") == {
        "ada@example.com|2024-01-05": {"member_email": "ada@example.com", "visit_date": "2024-01-05"}
    }


def test_records_without_key_values_use_content_hash():
    writer = SqlRecordWriter("ds-custom", "custom")
    record = {"name": "Ada", "score": 3}

    writer.write([record, dict(record)])
    writer.write([{"score": 3, "name": "Ada"}])

    assert len(_stored("ds-custom")) == 1
    assert SqlRecordWriter("ds", "members").record_key({"email": ""}) != ""


def test_long_keys_are_hashed():
    writer = SqlRecordWriter("ds-members", "members")
    email = "a" * 140 + "@example.com"

    assert writer.record_key({"email": email}) == hashlib.sha256(email.encode("utf-8")).hexdigest()


def test_empty_write_is_a_no_op():
    assert SqlRecordWriter("ds-members", "members").write([]).written == 0


def test_unreachable_database_raises_destination_unavailable(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'db.sqlite'}")
    writer = SqlRecordWriter("ds-members", "members", session_factory=sessionmaker(bind=engine))

    with pytest.raises(DestinationUnavailableError):
        writer.write([{"email": "ada@example.com"}])


def test_build_destination_writer_defaults_to_sql(make_data_source):
    writer = build_destination_writer(make_data_source())

    assert isinstance(writer, SqlRecordWriter)
    assert writer.key_fields == ("email",)

    custom = build_destination_writer(
        make_data_source(source_config={"destination_key_fields": ["phone"]})
    )
    assert custom.key_fields == ("phone",)


def test_registered_writer_factory_is_used(make_data_source, monkeypatch):
    monkeypatch.setattr("sift_sync.destinations._WRITER_REGISTRY", dict(_WRITER_REGISTRY))
    fake = InMemoryWriter()
    register_destination_writer("members", lambda data_source: fake)

    assert build_destination_writer(make_data_source()) is fake
