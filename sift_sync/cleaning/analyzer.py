"""Column type inference over a bounded sample of raw rows."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from ..schemas.columns import (
    AnalysisResult,
    ColumnConfig,
    ColumnPreview,
    ColumnType,
    StorageType,
)
from ..schemas.rules import (
    CleaningRule,
    LowercaseRule,
    ParseBooleanRule,
    ParseNumberRule,
    TrimRule,
    ValidateEmailRule,
    ValidatePhoneRule,
    ValidateUrlRule,
)
from . import values

STORAGE_TYPES: dict[ColumnType, StorageType] = {
    "integer": "integer",
    "number": "number",
    "boolean": "boolean",
    "date": "date",
    "timestamp": "timestamp",
    "email": "text",
    "phone": "text",
    "url": "text",
    "text": "text",
}


def _is_boolean_token(value: Any) -> bool:
    return values.parse_boolean(value) is not None


def _is_integer(value: Any) -> bool:
    return values.parse_integer(value) is not None and not isinstance(value, float)


def _is_number(value: Any) -> bool:
    return values.parse_number(value) is not None


def _is_date(value: Any) -> bool:
    return values.detect_date(value)[0]


# Candidate order matters: the first candidate every value satisfies wins.
_COLUMN_CANDIDATES: tuple[tuple[ColumnType, Callable[[Any], bool]], ...] = (
    ("integer", _is_integer),
    ("number", _is_number),
    ("boolean", _is_boolean_token),
    ("date", _is_date),
    ("email", values.is_email),
    ("phone", values.is_phone),
    ("url", values.is_url),
)


def detect_value_type(value: Any) -> ColumnType:
    """Classify a single raw value.

    Unlike column detection, a lone ``1`` or ``0`` is reported as boolean.
    """

    if values.is_empty(value):
        return "text"
    if isinstance(value, bool) or values.to_text(value).strip() in {"1", "0"}:
        return "boolean"
    return _detect_type([value])


def _detect_type(non_null: Sequence[Any]) -> ColumnType:
    if not non_null:
        return "text"
    for candidate, check in _COLUMN_CANDIDATES:
        if all(check(value) for value in non_null):
            if candidate == "date" and any(values.detect_date(value)[1] for value in non_null):
                return "timestamp"
            return candidate
    return "text"


def _column_names_from_rows(rows: Iterable[Mapping[str, Any]]) -> list[str]:
    names: dict[str, None] = {}
    for row in rows:
        for key in row:
            names.setdefault(key, None)
    return list(names)


def analyze_columns(
    rows: Sequence[Mapping[str, Any]],
    column_names: Sequence[str] | None = None,
    *,
    sample_limit: int = 10,
) -> AnalysisResult:
    """Infer a type and statistics for each column of a row sample.

    Args:
        rows: Raw rows keyed by header name; values may be null or empty strings.
        column_names: Header order. Defaults to every key seen, in first-seen order.
        sample_limit: Maximum number of non-null sample values kept per column.

    Returns:
        AnalysisResult with one ColumnPreview per column.
    """

    names = list(column_names) if column_names is not None else _column_names_from_rows(rows)
    previews: list[ColumnPreview] = []

    for name in names:
        non_null: list[Any] = []
        null_count = 0
        distinct: set[str] = set()
        for row in rows:
            value = row.get(name)
            if values.is_empty(value):
                null_count += 1
                continue
            non_null.append(value)
            distinct.add(values.to_text(value))

        previews.append(
            ColumnPreview(
                name=name,
                detected_type=_detect_type(non_null),
                sample_values=non_null[:sample_limit],
                unique_count=len(distinct),
                null_count=null_count,
            )
        )

    return AnalysisResult(columns=previews, total_rows=len(rows))


def suggest_cleaning_rules(preview: ColumnPreview) -> list[CleaningRule]:
    """Return a starter rule chain for a previewed column."""

    rules: list[CleaningRule] = []
    has_edge_whitespace = any(
        isinstance(value, str) and value != value.strip() for value in preview.sample_values
    )
    if has_edge_whitespace:
        rules.append(TrimRule())

    detected = preview.detected_type
    if detected == "email":
        rules.append(LowercaseRule())
        rules.append(ValidateEmailRule(on_invalid="null"))
    elif detected == "phone":
        rules.append(ValidatePhoneRule(format="e164", on_invalid="null"))
    elif detected == "url":
        rules.append(ValidateUrlRule(on_invalid="null"))
    elif detected == "number":
        rules.append(ParseNumberRule())
    elif detected == "boolean":
        rules.append(ParseBooleanRule())
    return rules


def generate_default_column_config(previews: Iterable[ColumnPreview]) -> list[ColumnConfig]:
    """Seed column configs from previews: snake_cased targets, all included."""

    configs: list[ColumnConfig] = []
    for preview in previews:
        configs.append(
            ColumnConfig(
                source_name=preview.name,
                target_name=values.to_snake_case(preview.name) or preview.name,
                type=STORAGE_TYPES[preview.detected_type],
                included=True,
                cleaning_rules=suggest_cleaning_rules(preview),
            )
        )
    return configs
