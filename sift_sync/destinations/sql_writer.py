"""Destination writer that upserts mapped records into the local database."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..exceptions import DestinationUnavailableError
from ..models.base import session_scope
from ..models.records import ImportedRecord
from ..schemas.sync import WriteResult
from ..utils.logging import setup_logger
from .base import BaseDestinationWriter, json_safe

logger = setup_logger(__name__, context={"component": "destination"})

DEFAULT_KEY_FIELDS: dict[str, tuple[str, ...]] = {
    "members": ("email",),
    "transactions": ("reference_number",),
}


class SqlRecordWriter(BaseDestinationWriter):
    """Upsert records into ``imported_records`` keyed by data source, destination and record key."""

    def __init__(
        self,
        data_source_id: str,
        destination_type: str,
        key_fields: Sequence[str] | None = None,
        session_factory: sessionmaker[Session] | None = None,
    ) -> None:
        if key_fields is None:
            key_fields = DEFAULT_KEY_FIELDS.get(destination_type, ())
        super().__init__(key_fields)
        self.data_source_id = data_source_id
        self.destination_type = destination_type
        self._session_factory = session_factory

    def write(self, records: Sequence[Mapping[str, Any]]) -> WriteResult:
        if not records:
            return WriteResult()

        # Later records win when a batch repeats a key.
        keyed: dict[str, dict[str, Any]] = {}
        for record in records:
            keyed[self.record_key(record)] = json_safe(record)

        try:
            with session_scope(self._session_factory) as session:
                existing = {
                    row.record_key: row
                    for row in session.scalars(
                        select(ImportedRecord)
                        .where(ImportedRecord.data_source_id == self.data_source_id)
                        .where(ImportedRecord.destination_type == self.destination_type)
                        .where(ImportedRecord.record_key.in_(list(keyed)))
                    )
                }
                for key, payload in keyed.items():
                    current = existing.get(key)
                    if current is not None:
                        current.payload = payload
                        continue
                    session.add(
                        ImportedRecord(
                            data_source_id=self.data_source_id,
                            destination_type=self.destination_type,
                            record_key=key,
                            payload=payload,
                        )
                    )
        except SQLAlchemyError as exc:
            logger.error(
                "Destination write failed",
                extra={"destination_type": self.destination_type, "error": str(exc)},
            )
            raise DestinationUnavailableError(
                f"Destination '{self.destination_type}' is unavailable: {exc}"
            ) from exc

        return WriteResult(written=len(keyed))
