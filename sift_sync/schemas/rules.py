"""Pydantic schemas for per-column cleaning rules.

Each rule is a variant of a closed union discriminated by its ``type`` tag.
Rule parameters use snake_case names on the wire.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter, field_validator

from .base import WireModel

InvalidPolicy = Literal["skip", "null", "error", "keep"]
PhoneFormat = Literal["e164", "national", "digits"]


class _Rule(WireModel):
    """Common configuration for rule variants."""


class TrimRule(_Rule):
    type: Literal["trim"] = "trim"


class CollapseWhitespaceRule(_Rule):
    type: Literal["collapse_whitespace"] = "collapse_whitespace"


class LowercaseRule(_Rule):
    type: Literal["lowercase"] = "lowercase"


class UppercaseRule(_Rule):
    type: Literal["uppercase"] = "uppercase"


class TitleCaseRule(_Rule):
    type: Literal["title_case"] = "title_case"


class NullToDefaultRule(_Rule):
    type: Literal["null_to_default"] = "null_to_default"
    default_value: str | int | float | bool | None = ""


class EmptyToNullRule(_Rule):
    type: Literal["empty_to_null"] = "empty_to_null"


class SkipIfEmptyRule(_Rule):
    type: Literal["skip_if_empty"] = "skip_if_empty"


class ParseNumberRule(_Rule):
    type: Literal["parse_number"] = "parse_number"
    remove_chars: str | None = None


class ParseBooleanRule(_Rule):
    type: Literal["parse_boolean"] = "parse_boolean"
    true_values: list[str] = Field(default_factory=list)
    false_values: list[str] = Field(default_factory=list)


class ParseDateRule(_Rule):
    type: Literal["parse_date"] = "parse_date"
    format: str = "YYYY-MM-DD"

    @field_validator("format")
    @classmethod
    def _validate_format(cls, value: str) -> str:
        if value.strip() == "":
            raise ValueError("format cannot be empty")
        return value


class ParsePercentageRule(_Rule):
    type: Literal["parse_percentage"] = "parse_percentage"
    as_decimal: bool = True


class ValidateEmailRule(_Rule):
    type: Literal["validate_email"] = "validate_email"
    on_invalid: InvalidPolicy = "skip"


class ValidatePhoneRule(_Rule):
    type: Literal["validate_phone"] = "validate_phone"
    format: PhoneFormat = "e164"
    on_invalid: InvalidPolicy = "skip"


class ValidateUrlRule(_Rule):
    type: Literal["validate_url"] = "validate_url"
    on_invalid: InvalidPolicy = "skip"


class FindReplaceRule(_Rule):
    type: Literal["find_replace"] = "find_replace"
    find: str
    replace: str = ""
    regex: bool = False


class SplitRule(_Rule):
    type: Literal["split"] = "split"
    delimiter: str
    take_index: int = 0

    @field_validator("delimiter")
    @classmethod
    def _validate_delimiter(cls, value: str) -> str:
        if value == "":
            raise ValueError("delimiter cannot be empty")
        return value


class PrefixRule(_Rule):
    type: Literal["prefix"] = "prefix"
    value: str


class SuffixRule(_Rule):
    type: Literal["suffix"] = "suffix"
    value: str


CleaningRule = Annotated[
    Union[
        TrimRule,
        CollapseWhitespaceRule,
        LowercaseRule,
        UppercaseRule,
        TitleCaseRule,
        NullToDefaultRule,
        EmptyToNullRule,
        SkipIfEmptyRule,
        ParseNumberRule,
        ParseBooleanRule,
        ParseDateRule,
        ParsePercentageRule,
        ValidateEmailRule,
        ValidatePhoneRule,
        ValidateUrlRule,
        FindReplaceRule,
        SplitRule,
        PrefixRule,
        SuffixRule,
    ],
    Field(discriminator="type"),
]

CLEANING_RULE_ADAPTER: TypeAdapter[CleaningRule] = TypeAdapter(CleaningRule)

RULE_TYPES: tuple[str, ...] = (
    "trim",
    "collapse_whitespace",
    "lowercase",
    "uppercase",
    "title_case",
    "null_to_default",
    "empty_to_null",
    "skip_if_empty",
    "parse_number",
    "parse_boolean",
    "parse_date",
    "parse_percentage",
    "validate_email",
    "validate_phone",
    "validate_url",
    "find_replace",
    "split",
    "prefix",
    "suffix",
)


def parse_rule(payload: object) -> CleaningRule:
    """Validate a single rule mapping into its typed variant."""

    return CLEANING_RULE_ADAPTER.validate_python(payload)
