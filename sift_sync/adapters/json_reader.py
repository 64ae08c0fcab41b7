"""Source reader for JSON arrays of objects."""

from __future__ import annotations

import json
import math
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import pandas as pd

from ..exceptions import ConfigurationError, SourceConnectionError
from .base import BaseSourceReader


class JSONSourceReader(BaseSourceReader):
    """
    Reader for JSON data from a file path or an inline string.

    Supports:
    - A top-level array of objects
    - An object holding the array under ``records_path`` (dotted keys)
    - Optional flattening of nested objects into ``parent.child`` columns
    """

    source_type = "json"

    def _load(self, source_config: Mapping[str, Any]) -> Any:
        origin, value = self._resolve_origin(source_config)
        try:
            if origin == "path":
                text = Path(value).read_text(encoding=source_config.get("encoding", "utf-8"))
            else:
                text = value
            return json.loads(text)
        except OSError as exc:
            raise SourceConnectionError(f"Failed to read JSON source: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise SourceConnectionError(f"Invalid JSON at line {exc.lineno}: {exc.msg}") from exc

    @staticmethod
    def _select_records(payload: Any, records_path: str | None) -> list[Any]:
        current = payload
        if records_path:
            for key in records_path.split("."):
                if not isinstance(current, Mapping) or key not in current:
                    raise ConfigurationError(f"records_path '{records_path}' not found in JSON source")
                current = current[key]
        if isinstance(current, Mapping):
            return [current]
        if not isinstance(current, list):
            raise ConfigurationError("JSON source must contain an array of objects")
        return current

    @staticmethod
    def _clean(value: Any) -> Any:
        if isinstance(value, float) and math.isnan(value):
            return None
        return value

    def read_all(self, source_config: Mapping[str, Any]) -> Iterator[dict[str, Any]]:
        records = self._select_records(self._load(source_config), source_config.get("records_path"))
        objects = [record for record in records if isinstance(record, Mapping)]
        if not objects:
            return
        if source_config.get("flatten", False):
            frame = pd.json_normalize(objects, sep=".")
            for row in frame.to_dict(orient="records"):
                yield {str(key): self._clean(value) for key, value in row.items()}
            return
        for record in objects:
            yield {str(key): value for key, value in record.items()}
