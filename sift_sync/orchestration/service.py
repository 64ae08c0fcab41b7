"""Configuration-time operations on data sources."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from ..adapters import get_source_reader
from ..cleaning.analyzer import analyze_columns
from ..exceptions import (
    ConfigurationError,
    DataSourceNotFoundError,
    DestinationSchemaNotFoundError,
)
from ..mapping.mapper import FieldMapper
from ..mapping.registry import get_destination_schema
from ..scheduling.schedule import next_run, validate_schedule
from ..schemas.columns import AnalysisResult
from ..schemas.sync import DataSource, SyncLog, SyncStatus
from ..utils.config import GlobalSettings, get_settings
from ..utils.logging import setup_logger
from .interfaces import Clock, ConfigStore, SourceReader, SystemClock

logger = setup_logger(__name__, context={"component": "data_sources"})


class DataSourceService:
    """Validate and persist data source configuration; expose status and logs."""

    def __init__(
        self,
        store: ConfigStore,
        *,
        reader_factory: Callable[[str], SourceReader] = get_source_reader,
        clock: Clock | None = None,
        settings: GlobalSettings | None = None,
    ) -> None:
        self.store = store
        self.reader_factory = reader_factory
        self.clock = clock or SystemClock()
        self.settings = settings or get_settings()

    def validate_configuration(self, data_source: DataSource) -> list[str]:
        """Return schedule and mapping problems that block a real sync."""

        errors = list(validate_schedule(data_source.schedule))
        try:
            schema = get_destination_schema(data_source.destination_type or "custom")
        except DestinationSchemaNotFoundError as exc:
            errors.append(str(exc))
            return errors

        # Columns are seeded by the first sync; mappings are checked once they exist.
        if data_source.column_config.columns:
            mapper = FieldMapper(schema, data_source.column_config)
            errors.extend(mapper.validate(data_source.field_mappings))
        return errors

    def save_configuration(self, data_source: DataSource) -> DataSource:
        """Validate and persist ``data_source``.

        The stored sync status is preserved; status only changes through transitions.

        Raises:
            ConfigurationError: If the schedule or mappings are invalid.
        """

        errors = self.validate_configuration(data_source)
        if errors:
            raise ConfigurationError(
                f"Invalid configuration for data source '{data_source.id}': " + "; ".join(errors),
                errors=errors,
            )

        status = SyncStatus.IDLE
        try:
            status = self.store.get_data_source(data_source.id).sync_status
        except DataSourceNotFoundError:
            pass

        prepared = data_source.model_copy(
            update={
                "sync_status": status,
                "next_sync_at": next_run(data_source.schedule, self.clock.now()),
            }
        )
        saved = self.store.save_data_source(prepared)
        logger.info(
            "Saved data source configuration",
            extra={"data_source_id": saved.id, "status": saved.sync_status.value},
        )
        return saved

    def analyze_source(
        self,
        source_type: str,
        source_config: Mapping[str, Any],
        *,
        limit: int | None = None,
    ) -> AnalysisResult:
        """Read a bounded sample from a source and analyze its columns."""

        reader = self.reader_factory(source_type)
        sample = reader.read_sample(source_config, limit or self.settings.sample_size)
        return analyze_columns(sample, sample_limit=self.settings.preview_sample_values)

    def acknowledge_status(self, data_source_id: str) -> DataSource:
        """Surface a finished sync back to ``idle``."""

        data_source = self.store.get_data_source(data_source_id)
        if data_source.sync_status == SyncStatus.IDLE:
            return data_source
        return self.store.transition_status(data_source_id, SyncStatus.IDLE)

    def list_sync_logs(self, data_source_id: str, limit: int = 50) -> list[SyncLog]:
        self.store.get_data_source(data_source_id)
        return self.store.list_sync_logs(data_source_id, limit=limit)
