"""Source reader for CSV files and inline CSV text."""

from __future__ import annotations

import io
from collections.abc import Iterator, Mapping
from typing import Any

import pandas as pd

from ..exceptions import ConfigurationError, SourceConnectionError
from .base import BaseSourceReader

DEFAULT_CHUNK_ROWS = 1000

# Options the reader controls itself.
_RESERVED_OPTIONS = frozenset({"dtype", "keep_default_na", "na_filter", "chunksize", "nrows"})


class CSVSourceReader(BaseSourceReader):
    """Reader for CSV data using pandas. Every cell is read as text."""

    source_type = "csv"

    def _csv_options(self, source_config: Mapping[str, Any]) -> dict[str, Any]:
        options = self._resolve_options(source_config, "csv_options")
        key_mapping = {"skip_rows": "skiprows", "delimiter": "sep"}
        normalized: dict[str, Any] = {}
        for key, value in options.items():
            mapped_key = key_mapping.get(key, key)
            if mapped_key in _RESERVED_OPTIONS:
                continue
            normalized[mapped_key] = value
        return normalized

    def _open(self, source_config: Mapping[str, Any], **read_options: Any) -> Any:
        origin, value = self._resolve_origin(source_config)
        options = {
            **self._csv_options(source_config),
            "dtype": str,
            "keep_default_na": False,
            "na_filter": False,
            **read_options,
        }
        try:
            if origin == "path":
                return pd.read_csv(value, **options)
            return pd.read_csv(io.StringIO(value), **options)
        except pd.errors.EmptyDataError:
            return None
        except (OSError, pd.errors.ParserError, UnicodeDecodeError) as exc:
            raise SourceConnectionError(f"Failed to read CSV source: {exc}") from exc
        except TypeError as exc:
            raise ConfigurationError(f"Invalid csv_options: {exc}") from exc

    @staticmethod
    def _records(frame: pd.DataFrame) -> list[dict[str, Any]]:
        return [{str(key): value for key, value in row.items()} for row in frame.to_dict(orient="records")]

    def read_sample(self, source_config: Mapping[str, Any], limit: int) -> list[dict[str, Any]]:
        frame = self._open(source_config, nrows=max(limit, 0))
        if frame is None:
            return []
        return self._records(frame)

    def read_all(self, source_config: Mapping[str, Any]) -> Iterator[dict[str, Any]]:
        chunk_rows = int(source_config.get("chunk_rows", DEFAULT_CHUNK_ROWS))
        reader = self._open(source_config, chunksize=chunk_rows)
        if reader is None:
            return
        try:
            with reader:
                for chunk in reader:
                    yield from self._records(chunk)
        except (OSError, pd.errors.ParserError, UnicodeDecodeError) as exc:
            raise SourceConnectionError(f"Failed to read CSV source: {exc}") from exc
