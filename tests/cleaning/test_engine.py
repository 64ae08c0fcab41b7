"""Tests for the row-level cleaning engine."""

from __future__ import annotations

from sift_sync.cleaning.engine import CleaningRuleEngine, handle_duplicates, should_include_row
from sift_sync.schemas.columns import ColumnConfig, ColumnConfiguration, RowFilter
from sift_sync.schemas.rules import (
    LowercaseRule,
    ParseNumberRule,
    SkipIfEmptyRule,
    TrimRule,
    ValidateEmailRule,
)


def _configuration(**overrides) -> ColumnConfiguration:
    fields = {
        "columns": [
            ColumnConfig(
                source_name="Email",
                target_name="email",
                cleaning_rules=[TrimRule(), LowercaseRule(), ValidateEmailRule(on_invalid="error")],
            ),
            ColumnConfig(source_name="Name", target_name="name", cleaning_rules=[SkipIfEmptyRule()]),
            ColumnConfig(source_name="Amount", target_name="amount", cleaning_rules=[ParseNumberRule()]),
            ColumnConfig(source_name="Internal", target_name="internal", included=False),
        ]
    }
    fields.update(overrides)
    return ColumnConfiguration(**fields)


def test_clean_row_keys_by_target_and_omits_excluded_columns():
    engine = CleaningRuleEngine(_configuration(), max_workers=1)

    result = engine.clean_row({"Email": " A@B.CO ", "Name": "Ada", "Amount": "$5", "Internal": "x"}, 1)

    assert result.status == "clean"
    assert result.row == {"email": "a@b.co", "name": "Ada", "amount": 5.0}


def test_clean_row_collects_errors_with_row_prefix():
    engine = CleaningRuleEngine(_configuration(), max_workers=1)

    result = engine.clean_row({"Email": "nope", "Name": "Ada", "Amount": "lots"}, 7)

    assert result.status == "error"
    assert len(result.errors) == 2
    assert all(message.startswith("Row 7: ") for message in result.errors)
    assert result.row["amount"] is None


def test_drop_short_circuits_remaining_columns():
    engine = CleaningRuleEngine(_configuration(), max_workers=1)

    result = engine.clean_row({"Email": "a@b.co", "Name": "", "Amount": "lots"})

    assert result.status == "dropped"
    assert result.errors == []
    assert "amount" not in result.row


def test_process_rows_tallies_outcomes_in_input_order():
    rows = [
        {"Email": "a@b.co", "Name": "A", "Amount": "1"},
        {"Email": "bad", "Name": "B", "Amount": "2"},
        {"Email": "c@b.co", "Name": "", "Amount": "3"},
        {"Email": "d@b.co", "Name": "D", "Amount": "4"},
    ]
    engine = CleaningRuleEngine(_configuration(), max_workers=4)

    report = engine.process_rows(rows)

    assert (report.clean, report.with_errors, report.dropped) == (2, 1, 1)
    assert report.processed == 3
    assert [row["name"] for row in report.cleaned_rows] == ["A", "B", "D"]
    assert report.error_samples[0].startswith("Row 2: Email:")


def test_processing_is_deterministic_across_worker_counts():
    rows = [{"Email": f"user{i}@example.com", "Name": f"U{i}", "Amount": str(i)} for i in range(50)]

    serial = CleaningRuleEngine(_configuration(), max_workers=1).process_rows(rows)
    parallel = CleaningRuleEngine(_configuration(), max_workers=8).process_rows(rows)

    assert serial.cleaned_rows == parallel.cleaned_rows


def test_row_filters_count_as_drops():
    configuration = _configuration(
        row_filters=[
            RowFilter(column="Amount", operator="greater_than", value="1", action="include"),
            RowFilter(column="Name", operator="starts_with", value="X", action="exclude"),
        ]
    )
    rows = [
        {"Email": "a@b.co", "Name": "A", "Amount": "1"},
        {"Email": "b@b.co", "Name": "B", "Amount": "2"},
        {"Email": "x@b.co", "Name": "Xavier", "Amount": "3"},
    ]

    report = CleaningRuleEngine(configuration, max_workers=1).process_rows(rows)

    assert report.filtered == 2
    assert report.dropped == 2
    assert [row["name"] for row in report.cleaned_rows] == ["B"]


def test_should_include_row_requires_all_includes():
    filters = [
        RowFilter(column="status", operator="equals", value="active"),
        RowFilter(column="email", operator="is_not_empty"),
    ]

    assert should_include_row({"status": "active", "email": "a@b.co"}, filters)
    assert not should_include_row({"status": "active", "email": ""}, filters)


def test_handle_duplicates_modes():
    rows = [{"k": "a", "n": 1}, {"k": "b", "n": 2}, {"k": "a", "n": 3}, {"k": "", "n": 4}, {"k": "", "n": 5}]

    assert handle_duplicates(rows, ["k"], "keep_all") == [0, 1, 2, 3, 4]
    assert handle_duplicates(rows, ["k"], "keep_first") == [0, 1, 3, 4]
    assert handle_duplicates(rows, ["k"], "keep_last") == [1, 2, 3, 4]
    assert handle_duplicates(rows, ["k"], "skip_all") == [1, 3, 4]


def test_duplicate_handling_uses_cleaned_values_and_counts_drops():
    configuration = _configuration(duplicate_key_columns=["Email"], duplicate_handling="keep_first")
    rows = [
        {"Email": "Ada@Example.com", "Name": "First", "Amount": "1"},
        {"Email": " ada@example.com", "Name": "Second", "Amount": "2"},
    ]

    report = CleaningRuleEngine(configuration, max_workers=1).process_rows(rows)

    assert [row["name"] for row in report.cleaned_rows] == ["First"]
    assert report.duplicates == 1
    assert report.dropped == 1


def test_duplicates_are_detected_across_batches():
    configuration = _configuration(duplicate_key_columns=["email"], duplicate_handling="keep_last")
    engine = CleaningRuleEngine(configuration, max_workers=1)

    first = engine.process_batch([{"Email": "a@b.co", "Name": "Old", "Amount": "1"}], start_row=1)
    second = engine.process_batch([{"Email": "a@b.co", "Name": "New", "Amount": "2"}], start_row=2)
    report = engine.finalize([first, second])

    assert [row["name"] for row in report.cleaned_rows] == ["New"]
    assert report.results[0].row_number == 2


def test_error_samples_are_capped():
    rows = [{"Email": "bad", "Name": "N", "Amount": "1"} for _ in range(10)]

    report = CleaningRuleEngine(_configuration(), max_workers=1, error_sample_limit=3).process_rows(rows)

    assert report.with_errors == 10
    assert len(report.error_samples) == 3
