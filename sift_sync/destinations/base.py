"""Base class for destination writers."""

from __future__ import annotations

import hashlib
import json
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from ..schemas.sync import WriteResult


def json_safe(record: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``record`` that serialises to JSON (dates become strings)."""

    return json.loads(json.dumps(dict(record), default=str))


def content_key(record: Mapping[str, Any]) -> str:
    """Stable hash of a record's content, independent of key order."""

    encoded = json.dumps(dict(record), sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


class BaseDestinationWriter(ABC):
    """
    Abstract base class for writers that persist mapped records.

    Writers upsert by a stable key so re-running a sync does not duplicate
    records. ``write`` returns counts rather than raising for per-record
    rejections; an unreachable destination raises.
    """

    def __init__(self, key_fields: Sequence[str] | None = None) -> None:
        self.key_fields = tuple(key_fields or ())

    def record_key(self, record: Mapping[str, Any]) -> str:
        """Return the upsert key: joined key field values, or a content hash."""

        if self.key_fields:
            parts = [record.get(name) for name in self.key_fields]
            if any(part not in (None, "") for part in parts):
                joined = "|".join("" if part is None else str(part).strip().lower() for part in parts)
                if len(joined) <= 128:
                    return joined
                return hashlib.sha256(joined.encode("utf-8")).hexdigest()
        return content_key(record)

    @abstractmethod
    def write(self, records: Sequence[Mapping[str, Any]]) -> WriteResult:
        """
        Upsert ``records`` into the destination.

        Raises:
            DestinationUnavailableError: If the destination cannot be reached
        """
