"""Per-value rule application with explicit three-way outcomes.

``apply_rule`` never raises for bad data. It returns ``Continue`` to keep
threading the value, ``Drop`` to exclude the whole row, or ``Fail`` to keep the
row while recording a row-level error.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from ..schemas.rules import (
    CleaningRule,
    CollapseWhitespaceRule,
    EmptyToNullRule,
    FindReplaceRule,
    LowercaseRule,
    NullToDefaultRule,
    ParseBooleanRule,
    ParseDateRule,
    ParseNumberRule,
    ParsePercentageRule,
    PrefixRule,
    SkipIfEmptyRule,
    SplitRule,
    SuffixRule,
    TitleCaseRule,
    TrimRule,
    UppercaseRule,
    ValidateEmailRule,
    ValidatePhoneRule,
    ValidateUrlRule,
)
from . import values


@dataclass(frozen=True)
class Continue:
    value: Any


@dataclass(frozen=True)
class Drop:
    reason: str


@dataclass(frozen=True)
class Fail:
    value: Any
    message: str


RuleOutcome = Union[Continue, Drop, Fail]

_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass
class ColumnOutcome:
    """Result of threading one value through a column's rule chain."""

    value: Any
    dropped: bool = False
    drop_reason: str | None = None
    errors: list[str] = field(default_factory=list)


def _string_transform(value: Any, transform: Any) -> Any:
    if value is None:
        return None
    return transform(value if isinstance(value, str) else values.to_text(value))


def _title_case(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" "))


def _invalid(rule: ValidateEmailRule | ValidatePhoneRule | ValidateUrlRule, value: Any, label: str) -> RuleOutcome:
    message = f"Invalid {label}: {values.to_text(value)!r}"
    if rule.on_invalid == "skip":
        return Drop(message)
    if rule.on_invalid == "null":
        return Continue(None)
    if rule.on_invalid == "error":
        return Fail(value, message)
    return Continue(value)


def _validate(
    rule: ValidateEmailRule | ValidatePhoneRule | ValidateUrlRule,
    value: Any,
    pending_error: str | None,
) -> RuleOutcome:
    label = {"validate_email": "email", "validate_phone": "phone", "validate_url": "url"}[rule.type]
    if pending_error is not None:
        return _invalid(rule, value, label)
    if values.is_empty(value):
        return Continue(value)

    if isinstance(rule, ValidateEmailRule):
        if values.is_email(value):
            return Continue(value.strip().lower())
    elif isinstance(rule, ValidatePhoneRule):
        formatted = values.format_phone(value, rule.format)
        if formatted is not None:
            return Continue(formatted)
    elif values.is_url(value):
        return Continue(value.strip())
    return _invalid(rule, value, label)


def apply_rule(value: Any, rule: CleaningRule, pending_error: str | None = None) -> RuleOutcome:
    """Apply a single rule to ``value``.

    Args:
        value: Current column value after upstream rules.
        rule: Rule variant to apply.
        pending_error: Unresolved parse error from an earlier rule in the chain.
            Validation rules treat the value as invalid when this is set.

    Returns:
        Continue, Drop or Fail.

    Raises:
        TypeError: If ``rule`` is not a known rule variant.
    """

    if isinstance(rule, TrimRule):
        return Continue(_string_transform(value, str.strip))
    if isinstance(rule, CollapseWhitespaceRule):
        return Continue(_string_transform(value, lambda text: _WHITESPACE_RUN.sub(" ", text)))
    if isinstance(rule, LowercaseRule):
        return Continue(_string_transform(value, str.lower))
    if isinstance(rule, UppercaseRule):
        return Continue(_string_transform(value, str.upper))
    if isinstance(rule, TitleCaseRule):
        return Continue(_string_transform(value, _title_case))
    if isinstance(rule, NullToDefaultRule):
        return Continue(rule.default_value if values.is_empty(value) else value)
    if isinstance(rule, EmptyToNullRule):
        return Continue(None if values.is_empty(value) else value)
    if isinstance(rule, SkipIfEmptyRule):
        if values.is_empty(value):
            return Drop("Value is empty")
        return Continue(value)
    if isinstance(rule, ParseNumberRule):
        if values.is_empty(value):
            return Continue(None)
        number = values.parse_number(value, rule.remove_chars)
        if number is None:
            return Fail(None, f"Could not parse number from {values.to_text(value)!r}")
        return Continue(number)
    if isinstance(rule, ParsePercentageRule):
        if values.is_empty(value):
            return Continue(None)
        percentage = values.parse_percentage(value, rule.as_decimal)
        if percentage is None:
            return Fail(None, f"Could not parse percentage from {values.to_text(value)!r}")
        return Continue(percentage)
    if isinstance(rule, ParseDateRule):
        if values.is_empty(value):
            return Continue(None)
        parsed = values.parse_date(value, rule.format)
        if parsed is None:
            return Fail(
                None, f"Could not parse date from {values.to_text(value)!r} with format {rule.format!r}"
            )
        return Continue(parsed)
    if isinstance(rule, ParseBooleanRule):
        if values.is_empty(value):
            return Continue(None)
        flag = values.parse_boolean(value, rule.true_values, rule.false_values)
        if flag is None:
            return Fail(None, f"Could not parse boolean from {values.to_text(value)!r}")
        return Continue(flag)
    if isinstance(rule, ValidateEmailRule | ValidatePhoneRule | ValidateUrlRule):
        return _validate(rule, value, pending_error)
    if isinstance(rule, FindReplaceRule):
        if value is None:
            return Continue(None)
        text = values.to_text(value)
        if rule.regex:
            try:
                return Continue(re.sub(rule.find, rule.replace, text))
            except re.error as exc:
                return Fail(value, f"Invalid find_replace pattern {rule.find!r}: {exc}")
        return Continue(text.replace(rule.find, rule.replace) if rule.find else text)
    if isinstance(rule, SplitRule):
        if value is None:
            return Continue(None)
        parts = values.to_text(value).split(rule.delimiter)
        if 0 <= rule.take_index < len(parts):
            return Continue(parts[rule.take_index].strip())
        return Continue(None)
    if isinstance(rule, PrefixRule):
        return Continue(None if value is None else f"{rule.value}{values.to_text(value)}")
    if isinstance(rule, SuffixRule):
        return Continue(None if value is None else f"{values.to_text(value)}{rule.value}")
    raise TypeError(f"Unsupported cleaning rule: {type(rule).__name__}")


def apply_column_rules(value: Any, rules: Sequence[CleaningRule]) -> ColumnOutcome:
    """Thread ``value`` through ``rules`` in order.

    A failed parse leaves the value null and a pending error. A later
    validation rule resolves the pending error through its ``on_invalid``
    policy; otherwise the pending error is reported as a row error.
    """

    current = value
    errors: list[str] = []
    pending_error: str | None = None

    for rule in rules:
        validating = isinstance(rule, ValidateEmailRule | ValidatePhoneRule | ValidateUrlRule)
        outcome = apply_rule(current, rule, pending_error)
        if validating:
            pending_error = None

        if isinstance(outcome, Drop):
            return ColumnOutcome(value=current, dropped=True, drop_reason=outcome.reason, errors=errors)
        if isinstance(outcome, Fail):
            current = outcome.value
            if rule.type.startswith("parse_"):
                if pending_error is not None:
                    errors.append(pending_error)
                pending_error = outcome.message
            else:
                errors.append(outcome.message)
            continue
        current = outcome.value

    if pending_error is not None:
        errors.append(pending_error)
    return ColumnOutcome(value=current, errors=errors)
