"""Row-level cleaning: filters, per-column rule chains and duplicate handling."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Literal

from ..schemas.columns import ColumnConfiguration, DuplicateHandling, RowFilter
from ..utils.logging import setup_logger
from . import values
from .rules import apply_column_rules

logger = setup_logger(__name__, context={"component": "cleaning"})

RowStatus = Literal["clean", "error", "dropped"]


@dataclass
class RowResult:
    """Outcome of cleaning one raw row."""

    status: RowStatus
    row: dict[str, Any]
    errors: list[str] = field(default_factory=list)
    drop_reason: str | None = None
    row_number: int | None = None


@dataclass
class CleaningReport:
    """Aggregate of a cleaning pass over many rows."""

    results: list[RowResult] = field(default_factory=list)
    clean: int = 0
    with_errors: int = 0
    dropped: int = 0
    filtered: int = 0
    rule_dropped: int = 0
    duplicates: int = 0
    error_samples: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.clean + self.with_errors

    @property
    def cleaned_rows(self) -> list[dict[str, Any]]:
        return [result.row for result in self.results]


@dataclass
class BatchResult:
    """Rows surviving filters and rule drops for one batch, plus drop tallies."""

    results: list[RowResult] = field(default_factory=list)
    filtered: int = 0
    rule_dropped: int = 0


def matches_filter(row: Mapping[str, Any], row_filter: RowFilter) -> bool:
    """Evaluate a filter predicate against a raw row."""

    cell = row.get(row_filter.column)
    operator = row_filter.operator
    if operator == "is_empty":
        return values.is_empty(cell)
    if operator == "is_not_empty":
        return not values.is_empty(cell)

    text = values.to_text(cell)
    target = values.to_text(row_filter.value)
    if operator == "equals":
        return text == target
    if operator == "not_equals":
        return text != target
    if operator == "contains":
        return target in text
    if operator == "not_contains":
        return target not in text
    if operator == "starts_with":
        return text.startswith(target)
    if operator == "ends_with":
        return text.endswith(target)

    left = values.parse_number(cell)
    right = values.parse_number(row_filter.value)
    if left is None or right is None:
        return False
    if operator == "greater_than":
        return left > right
    return left < right


def should_include_row(row: Mapping[str, Any], filters: Sequence[RowFilter]) -> bool:
    """Rows must match every include filter and no exclude filter."""

    for row_filter in filters:
        matched = matches_filter(row, row_filter)
        if row_filter.action == "include" and not matched:
            return False
        if row_filter.action == "exclude" and matched:
            return False
    return True


def row_key(row: Mapping[str, Any], key_columns: Sequence[str]) -> str:
    return "|".join(values.to_text(row.get(column)) for column in key_columns)


def handle_duplicates(
    rows: Sequence[Mapping[str, Any]],
    key_columns: Sequence[str],
    handling: DuplicateHandling,
) -> list[int]:
    """Return the indexes of ``rows`` that survive duplicate handling.

    Rows whose key columns are all empty are never treated as duplicates.
    """

    if handling == "keep_all" or not key_columns:
        return list(range(len(rows)))

    keys: list[str | None] = []
    for row in rows:
        if all(values.is_empty(row.get(column)) for column in key_columns):
            keys.append(None)
        else:
            keys.append(row_key(row, key_columns))

    if handling == "skip_all":
        counts = Counter(key for key in keys if key is not None)
        return [index for index, key in enumerate(keys) if key is None or counts[key] == 1]

    chosen: dict[str, int] = {}
    for index, key in enumerate(keys):
        if key is None:
            continue
        if handling == "keep_first":
            chosen.setdefault(key, index)
        else:
            chosen[key] = index
    kept = set(chosen.values())
    return [index for index, key in enumerate(keys) if key is None or index in kept]


class CleaningRuleEngine:
    """Apply a data source's column configuration to raw rows."""

    def __init__(
        self,
        configuration: ColumnConfiguration,
        *,
        max_workers: int = 4,
        error_sample_limit: int = 50,
    ) -> None:
        self.configuration = configuration
        self.max_workers = max(1, max_workers)
        self.error_sample_limit = error_sample_limit
        self._columns = configuration.included_columns()

    def clean_row(self, row: Mapping[str, Any], row_number: int | None = None) -> RowResult:
        """Run every included column's rule chain over one raw row.

        A drop stops evaluation of the remaining columns.
        """

        cleaned: dict[str, Any] = {}
        errors: list[str] = []
        prefix = f"Row {row_number}: " if row_number is not None else ""

        for column in self._columns:
            outcome = apply_column_rules(row.get(column.source_name), column.cleaning_rules)
            if outcome.dropped:
                return RowResult(
                    status="dropped",
                    row=cleaned,
                    errors=errors,
                    drop_reason=f"{column.source_name}: {outcome.drop_reason}",
                    row_number=row_number,
                )
            cleaned[column.target_name] = outcome.value
            errors.extend(f"{prefix}{column.source_name}: {message}" for message in outcome.errors)

        return RowResult(
            status="error" if errors else "clean",
            row=cleaned,
            errors=errors,
            row_number=row_number,
        )

    def process_batch(self, rows: Sequence[Mapping[str, Any]], *, start_row: int = 1) -> BatchResult:
        """Filter and clean one batch, preserving input order."""

        batch = BatchResult()
        candidates: list[tuple[int, Mapping[str, Any]]] = []
        for offset, row in enumerate(rows):
            if should_include_row(row, self.configuration.row_filters):
                candidates.append((start_row + offset, row))
            else:
                batch.filtered += 1

        if self.max_workers > 1 and len(candidates) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(
                    executor.map(lambda item: self.clean_row(item[1], item[0]), candidates)
                )
        else:
            results = [self.clean_row(row, number) for number, row in candidates]

        for result in results:
            if result.status == "dropped":
                batch.rule_dropped += 1
            else:
                batch.results.append(result)

        logger.debug(
            "Cleaned batch of %s rows (%s filtered, %s dropped)",
            len(rows),
            batch.filtered,
            batch.rule_dropped,
        )
        return batch

    def _key_columns(self) -> list[str]:
        resolved: list[str] = []
        for name in self.configuration.duplicate_key_columns:
            column = self.configuration.find_column(name)
            resolved.append(column.target_name if column is not None else name)
        return resolved

    def finalize(self, batches: Iterable[BatchResult]) -> CleaningReport:
        """Apply duplicate handling across batches and tally the report."""

        report = CleaningReport()
        survivors: list[RowResult] = []
        for batch in batches:
            survivors.extend(batch.results)
            report.filtered += batch.filtered
            report.rule_dropped += batch.rule_dropped

        kept = handle_duplicates(
            [result.row for result in survivors],
            self._key_columns(),
            self.configuration.duplicate_handling,
        )
        report.results = [survivors[index] for index in kept]
        report.duplicates = len(survivors) - len(report.results)
        report.dropped = report.filtered + report.rule_dropped + report.duplicates

        for result in report.results:
            if result.status == "error":
                report.with_errors += 1
                remaining = self.error_sample_limit - len(report.error_samples)
                if remaining > 0:
                    report.error_samples.extend(result.errors[:remaining])
            else:
                report.clean += 1
        return report

    def process_rows(self, rows: Sequence[Mapping[str, Any]]) -> CleaningReport:
        """Filter, clean and de-duplicate ``rows`` in one pass."""

        return self.finalize([self.process_batch(rows)])
