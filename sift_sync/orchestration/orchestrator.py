"""Sync orchestration: one read, clean, map, write and log pass per attempt."""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

from tenacity import Retrying, retry_if_exception, stop_after_attempt

from ..adapters import get_source_reader
from ..cleaning.analyzer import analyze_columns, generate_default_column_config
from ..cleaning.engine import BatchResult, CleaningRuleEngine
from ..destinations import build_destination_writer
from ..exceptions import (
    ConfigurationError,
    DestinationUnavailableError,
    InvalidStatusTransition,
    SiftSyncError,
    SourceConnectionError,
    SyncAlreadyRunningError,
    SyncCancelledError,
    SyncLeaseLostError,
    SyncTimeoutError,
)
from ..mapping.mapper import FieldMapper, auto_map_fields
from ..mapping.registry import get_destination_schema
from ..monitoring.metrics import (
    decrement_active_syncs,
    increment_active_syncs,
    observe_sync_duration,
    record_rows,
    record_sync_attempt,
    record_sync_error,
    record_sync_rejected,
    record_sync_retry,
)
from ..scheduling.schedule import validate_schedule
from ..schemas.mapping import DestinationSchema
from ..schemas.sync import DataSource, SyncLog, SyncStatus, WriteResult
from ..tasks.error_handling import classify_exception
from ..tasks.policies import SyncRetryPolicy
from ..utils.config import GlobalSettings, get_settings
from ..utils.logging import log_sync_attempt, setup_logger
from .interfaces import Clock, ConfigStore, DestinationWriter, SourceReader, SystemClock
from .state import path_to_syncing

logger = setup_logger(__name__, context={"component": "orchestrator"})

CANCELLED_MESSAGE = "Sync cancelled"


@dataclass
class AttemptTally:
    """Running counts for a single attempt, kept current so failures report partial progress."""

    processed: int = 0
    row_errors: int = 0
    write_failed: int = 0
    dropped: int = 0
    written: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.row_errors + self.write_failed

    def add_errors(self, messages: Iterable[str], limit: int) -> None:
        for message in messages:
            if len(self.errors) >= limit:
                return
            self.errors.append(message)


@dataclass
class ActiveRun:
    """A sync holding the lease for one data source in this process."""

    data_source_id: str
    owner: str
    renewed_at: datetime
    cancel_event: threading.Event = field(default_factory=threading.Event)


class SyncOrchestrator:
    """Run sync attempts for data sources under the retry and exclusion rules."""

    def __init__(
        self,
        store: ConfigStore,
        *,
        reader_factory: Callable[[str], SourceReader] = get_source_reader,
        writer_factory: Callable[[DataSource], DestinationWriter] = build_destination_writer,
        clock: Clock | None = None,
        sleep: Callable[[float], None] | None = None,
        settings: GlobalSettings | None = None,
    ) -> None:
        """
        Args:
            sleep: Replaces the retry wait. By default the wait blocks on the
                run's cancel event, so ``cancel`` cuts it short.
        """
        self.store = store
        self.reader_factory = reader_factory
        self.writer_factory = writer_factory
        self.clock = clock or SystemClock()
        self.sleep = sleep
        self.settings = settings or get_settings()
        self._runs: dict[str, ActiveRun] = {}
        self._lock = threading.Lock()

    @property
    def lease_renew_seconds(self) -> float:
        """Interval between lease renewals; always well inside the lease TTL."""

        return min(self.settings.sync_lease_renew_seconds, self.settings.sync_lease_ttl_seconds / 2)

    def cancel(self, data_source_id: str) -> bool:
        """Request cancellation of an in-flight sync.

        Returns True when a sync was running for ``data_source_id``.
        """

        with self._lock:
            run = self._runs.get(data_source_id)
        if run is not None:
            run.cancel_event.set()
        flagged = self.store.request_cancellation(data_source_id)
        return run is not None or flagged

    def run_sync_once(self, data_source_id: str) -> SyncLog:
        """Run a sync for ``data_source_id`` including retries and return the last attempt's log.

        Raises:
            SyncAlreadyRunningError: If another run holds the data source lease.
        """

        owner = uuid4().hex
        acquired_at = self.clock.now()
        if not self.store.acquire_sync_lease(
            data_source_id, owner, self.settings.sync_lease_ttl_seconds, acquired_at
        ):
            record_sync_rejected()
            logger.warning(
                "Sync already running; trigger rejected",
                extra={"data_source_id": data_source_id, "status": "rejected"},
            )
            raise SyncAlreadyRunningError(data_source_id)

        run = ActiveRun(data_source_id=data_source_id, owner=owner, renewed_at=acquired_at)
        with self._lock:
            self._runs[data_source_id] = run
        increment_active_syncs()
        try:
            data_source = self.store.get_data_source(data_source_id)
            self._enter_syncing(data_source)
            return self._run_with_retries(data_source, run)
        finally:
            decrement_active_syncs()
            with self._lock:
                self._runs.pop(data_source_id, None)
            self.store.release_sync_lease(data_source_id, owner)

    def _enter_syncing(self, data_source: DataSource) -> None:
        if data_source.sync_status == SyncStatus.SYNCING:
            # The lease was free, so the previous run died without finishing.
            logger.warning(
                "Recovering stale syncing status",
                extra={"data_source_id": data_source.id, "status": "stale"},
            )
            self.store.transition_status(data_source.id, SyncStatus.FAILED)
            steps = path_to_syncing(SyncStatus.FAILED)
        else:
            steps = path_to_syncing(data_source.sync_status)
        for step in steps:
            self.store.transition_status(data_source.id, step)

    def _settle(self, data_source_id: str, target: SyncStatus) -> bool:
        """Leave ``syncing`` for ``target``; False when another run already moved the status."""

        try:
            self.store.transition_status(data_source_id, target)
        except InvalidStatusTransition as exc:
            logger.warning(
                "Sync status not updated: %s",
                exc,
                extra={"data_source_id": data_source_id, "status": "skipped"},
            )
            return False
        return True

    def _hold_lease(self, run: ActiveRun, *, force: bool = False) -> None:
        """Renew the run's lease once the renewal interval has passed.

        Raises:
            SyncLeaseLostError: If the lease expired and another run took it.
        """

        now = self.clock.now()
        if not force and (now - run.renewed_at).total_seconds() < self.lease_renew_seconds:
            return
        if not self.store.renew_sync_lease(
            run.data_source_id, run.owner, self.settings.sync_lease_ttl_seconds, now
        ):
            raise SyncLeaseLostError(run.data_source_id)
        run.renewed_at = now

    def _cancel_requested(self, run: ActiveRun) -> bool:
        return run.cancel_event.is_set() or self.store.cancellation_requested(run.data_source_id)

    def _wait_for_retry(self, run: ActiveRun, seconds: float) -> None:
        """Wait out a retry delay in slices, renewing the lease before each one.

        Raises:
            SyncCancelledError: If the sync is cancelled while waiting.
            SyncLeaseLostError: If the lease cannot be renewed.
        """

        remaining = seconds
        while True:
            if self._cancel_requested(run):
                raise SyncCancelledError(
                    f"Sync for data source '{run.data_source_id}' was cancelled while waiting to retry"
                )
            self._hold_lease(run, force=True)
            if remaining <= 0:
                return
            step = min(remaining, self.lease_renew_seconds)
            if self.sleep is None:
                run.cancel_event.wait(step)
            else:
                self.sleep(step)
            remaining -= step

    def _run_with_retries(self, data_source: DataSource, run: ActiveRun) -> SyncLog:
        policy = SyncRetryPolicy.from_schedule(data_source.schedule)
        attempt_logs: list[SyncLog] = []

        def _before_sleep(retry_state: Any) -> None:
            record_sync_retry()
            self.store.update_data_source(data_source.id, retry_count=retry_state.attempt_number)
            logger.warning(
                "Retrying sync after %s minutes",
                policy.delay_minutes(retry_state.attempt_number),
                extra={
                    "data_source_id": data_source.id,
                    "attempt": retry_state.attempt_number,
                    "status": "retrying",
                },
            )

        retrying = Retrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=lambda retry_state: policy.delay_seconds(retry_state.attempt_number),
            retry=retry_if_exception(policy.is_retryable),
            sleep=lambda seconds: self._wait_for_retry(run, seconds),
            before_sleep=_before_sleep,
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    self._run_attempt(run, attempt.retry_state.attempt_number, attempt_logs)
        except SyncLeaseLostError:
            # The status now belongs to the run holding the lease.
            logger.error(
                "Sync lease lost; stopping without touching sync status",
                extra={"data_source_id": data_source.id, "status": "lease_lost"},
            )
            return attempt_logs[-1]
        except SiftSyncError as exc:
            if isinstance(exc, SyncCancelledError) and not attempt_logs[-1].cancelled:
                logger.warning(
                    "Sync cancelled while waiting to retry",
                    extra={"data_source_id": data_source.id, "status": "cancelled"},
                )
            self._settle(data_source.id, SyncStatus.FAILED)
            self.store.update_data_source(data_source.id, retry_count=len(attempt_logs) - 1)
            return attempt_logs[-1]
        except Exception:
            self._settle(data_source.id, SyncStatus.FAILED)
            raise

        final_log = attempt_logs[-1]
        if self._settle(data_source.id, SyncStatus.SUCCESS):
            self.store.update_data_source(
                data_source.id, retry_count=0, last_sync_at=final_log.completed_at
            )
        return final_log

    def _run_attempt(
        self,
        run: ActiveRun,
        attempt_number: int,
        attempt_logs: list[SyncLog],
    ) -> SyncLog:
        data_source_id = run.data_source_id
        started_at = self.clock.now()
        log = self.store.append_sync_log(
            SyncLog(
                data_source_id=data_source_id,
                status="running",
                attempt=attempt_number,
                started_at=started_at,
            )
        )
        attempt_logs.append(log)
        deadline = started_at + timedelta(seconds=self.settings.sync_timeout_seconds)
        tally = AttemptTally()

        try:
            self._execute(run, tally, deadline)
        except SyncCancelledError as exc:
            attempt_logs[-1] = self._finalize(log, tally, "failed", exc, cancelled=True)
            raise
        except Exception as exc:
            attempt_logs[-1] = self._finalize(log, tally, "failed", exc)
            if not isinstance(exc, SiftSyncError):
                logger.exception(
                    "Unexpected error during sync attempt",
                    extra={"data_source_id": data_source_id, "sync_log_id": log.id},
                )
            raise
        attempt_logs[-1] = self._finalize(log, tally, "success", None)
        return attempt_logs[-1]

    def _finalize(
        self,
        log: SyncLog,
        tally: AttemptTally,
        status: str,
        error: BaseException | None,
        *,
        cancelled: bool = False,
    ) -> SyncLog:
        completed_at = self.clock.now()
        error_message = None
        if cancelled:
            error_message = CANCELLED_MESSAGE
        elif error is not None:
            error_message = str(error) or error.__class__.__name__

        finalized = self.store.finalize_sync_log(
            log.model_copy(
                update={
                    "status": status,
                    "completed_at": completed_at,
                    "records_processed": tally.processed,
                    "records_failed": tally.failed,
                    "records_dropped": tally.dropped,
                    "records_written": tally.written,
                    "error_message": error_message,
                    "errors": list(tally.errors),
                    "cancelled": cancelled,
                }
            )
        )

        duration_seconds = (completed_at - log.started_at).total_seconds()
        record_sync_attempt(status)
        observe_sync_duration(duration_seconds)
        record_rows("processed", tally.processed)
        record_rows("failed", tally.failed)
        record_rows("dropped", tally.dropped)
        record_rows("written", tally.written)
        extra: dict[str, Any] = {}
        if error is not None:
            classification, retryable = classify_exception(error)
            record_sync_error(classification)
            extra = {"classification": classification, "retryable": retryable}
        log_sync_attempt(logger, finalized, **extra)
        return finalized

    def _check_progress(self, run: ActiveRun, deadline: datetime) -> None:
        if self._cancel_requested(run):
            raise SyncCancelledError(f"Sync for data source '{run.data_source_id}' was cancelled")
        if self.clock.now() > deadline:
            raise SyncTimeoutError(run.data_source_id, self.settings.sync_timeout_seconds)
        self._hold_lease(run)

    def _prepare(self, data_source: DataSource, reader: SourceReader) -> tuple[DataSource, DestinationSchema | None]:
        """Validate configuration and seed columns and mappings on the first run."""

        schedule_errors = validate_schedule(data_source.schedule)
        if schedule_errors:
            raise ConfigurationError(
                "Invalid schedule configuration: " + "; ".join(schedule_errors),
                errors=schedule_errors,
            )
        schema = get_destination_schema(data_source.destination_type or "custom")

        if not data_source.column_config.columns:
            sample = list(
                self._guard_source(
                    lambda: reader.read_sample(data_source.source_config, self.settings.sample_size)
                )
            )
            analysis = analyze_columns(sample, sample_limit=self.settings.preview_sample_values)
            columns = generate_default_column_config(analysis.columns)
            changes: dict[str, Any] = {
                "column_previews": analysis.columns,
                "column_config": data_source.column_config.model_copy(update={"columns": columns}),
            }
            if schema is not None and not data_source.field_mappings:
                changes["field_mappings"] = auto_map_fields(columns, schema)
            data_source = self.store.update_data_source(data_source.id, **changes)
            logger.info(
                "Analyzed %s sampled rows into %s columns",
                analysis.total_rows,
                len(columns),
                extra={"data_source_id": data_source.id},
            )
        return data_source, schema

    def _guard_source(self, produce: Callable[[], Iterable[Mapping[str, Any]]]) -> Iterator[Mapping[str, Any]]:
        """Iterate reader output, wrapping reader failures as SourceConnectionError."""

        try:
            iterator = iter(produce())
        except SiftSyncError:
            raise
        except Exception as exc:
            raise SourceConnectionError(f"Failed to read from source: {exc}") from exc
        while True:
            try:
                row = next(iterator)
            except StopIteration:
                return
            except SiftSyncError:
                raise
            except Exception as exc:
                raise SourceConnectionError(f"Failed to read from source: {exc}") from exc
            yield row

    def _write(self, writer: DestinationWriter, records: list[dict[str, Any]]) -> WriteResult:
        try:
            return writer.write(records)
        except SiftSyncError:
            raise
        except Exception as exc:
            raise DestinationUnavailableError(f"Destination rejected write: {exc}") from exc

    def _execute(
        self,
        run: ActiveRun,
        tally: AttemptTally,
        deadline: datetime,
    ) -> None:
        data_source_id = run.data_source_id
        settings = self.settings
        limit = settings.error_sample_limit
        self._check_progress(run, deadline)

        data_source = self.store.get_data_source(data_source_id)
        reader = self.reader_factory(data_source.source_type)
        data_source, schema = self._prepare(data_source, reader)

        mappings = data_source.field_mappings
        mapper = FieldMapper(schema, data_source.column_config)
        mapper.ensure_valid(mappings)
        writer = self.writer_factory(data_source)
        engine = CleaningRuleEngine(
            data_source.column_config,
            max_workers=settings.sync_row_concurrency,
            error_sample_limit=limit,
        )

        rows = self._guard_source(lambda: reader.read_all(data_source.source_config))
        batches: list[BatchResult] = []
        next_row = 1
        while True:
            self._check_progress(run, deadline)
            chunk = list(itertools.islice(rows, settings.sync_batch_size))
            if not chunk:
                break
            batch = engine.process_batch(chunk, start_row=next_row)
            next_row += len(chunk)
            batches.append(batch)
            tally.dropped += batch.filtered + batch.rule_dropped

        report = engine.finalize(batches)
        tally.dropped = report.dropped

        records: list[dict[str, Any]] = []
        for result in report.results:
            mapped = mapper.apply(result.row, mappings)
            records.append(mapped.record)
            if result.status == "error" or mapped.has_errors:
                tally.row_errors += 1
                prefix = f"Row {result.row_number}: " if result.row_number is not None else ""
                tally.add_errors(result.errors, limit)
                tally.add_errors((f"{prefix}{message}" for message in mapped.errors), limit)
            tally.processed += 1

        for start in range(0, len(records), settings.sync_batch_size):
            self._check_progress(run, deadline)
            outcome = self._write(writer, records[start : start + settings.sync_batch_size])
            tally.written += outcome.written
            tally.write_failed += outcome.failed
            tally.add_errors(outcome.errors, limit)
