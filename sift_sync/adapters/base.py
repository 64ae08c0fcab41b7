"""Base class for source readers."""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from typing import Any

from ..exceptions import ConfigurationError


class BaseSourceReader(ABC):
    """
    Abstract base class for readers that pull raw rows from a source.

    Each reader implements ``read_all``; ``read_sample`` defaults to the first
    ``limit`` rows of the full read.
    """

    source_type: str = "unknown"

    @abstractmethod
    def read_all(self, source_config: Mapping[str, Any]) -> Iterator[dict[str, Any]]:
        """
        Stream every row from the source.

        Args:
            source_config: Reader-specific configuration for one data source

        Raises:
            SourceConnectionError: If the source cannot be read
            ConfigurationError: If the configuration is incomplete
        """

    def read_sample(self, source_config: Mapping[str, Any], limit: int) -> list[dict[str, Any]]:
        """Return at most ``limit`` rows for preview and analysis."""

        return list(itertools.islice(self.read_all(source_config), max(limit, 0)))

    def _resolve_origin(self, source_config: Mapping[str, Any]) -> tuple[str, str]:
        """Return ``("path", value)`` or ``("data", value)`` from the configuration."""

        path = source_config.get("path")
        if path:
            return "path", str(path)
        data = source_config.get("data")
        if data:
            return "data", str(data)
        raise ConfigurationError(
            f"{self.source_type} source requires either 'path' or inline 'data' in source_config"
        )

    def _resolve_options(self, source_config: Mapping[str, Any], key: str) -> dict[str, Any]:
        """Return a validated option mapping stored under ``key``."""

        options = source_config.get(key)
        if options is None:
            return {}
        if not isinstance(options, Mapping):
            raise ConfigurationError(f"'{key}' must be a mapping of options")
        return {name: value for name, value in options.items() if value is not None}
