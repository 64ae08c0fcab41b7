"""Scalar parsing and formatting helpers shared by the analyzer and the rule engine.

Every helper is a pure function. Parsers return ``None`` when a value cannot be
interpreted instead of raising, so callers decide how a miss is accounted for.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any
from urllib.parse import urlparse

from dateutil import parser as date_parser

DEFAULT_TRUE_VALUES: tuple[str, ...] = ("true", "yes", "y", "1", "t", "on")
DEFAULT_FALSE_VALUES: tuple[str, ...] = ("false", "no", "n", "0", "f", "off")

INTEGER_PATTERN = re.compile(r"^-?\d+$")
NUMBER_PATTERN = re.compile(r"^-?(\d+\.?\d*|\.\d+)$")
CURRENCY_CHARACTERS = "$€£¥,"
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_CHARACTERS = re.compile(r"^\+?[\d\s\-().]+$")
TIME_COMPONENT = re.compile(r"\d{1,2}:\d{2}")

ISO_DATE_PATTERN = re.compile(
    r"^\d{4}-\d{1,2}-\d{1,2}"
    r"([T ]\d{1,2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?)?$"
)
SLASH_DATE_PATTERN = re.compile(
    r"^\d{1,2}/\d{1,2}/\d{2,4}( \d{1,2}:\d{2}(:\d{2})?( ?[AaPp][Mm])?)?$"
)
MONTH_NAME_PATTERN = re.compile(
    r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\b",
    re.IGNORECASE,
)

# Ordered longest-first so "YYYY" wins over "YY" and "MM" over "M".
_DATE_TOKENS: tuple[tuple[str, str], ...] = (
    ("YYYY", "%Y"),
    ("YY", "%y"),
    ("MM", "%m"),
    ("DD", "%d"),
    ("HH", "%H"),
    ("mm", "%M"),
    ("ss", "%S"),
    ("M", "%m"),
    ("D", "%d"),
)
_DATE_TOKEN_PATTERN = re.compile("|".join(token for token, _ in _DATE_TOKENS))
_DATE_TOKEN_MAP = dict(_DATE_TOKENS)
_TIME_DIRECTIVES = ("%H", "%I", "%M", "%S", "%f", "%p")
_DETECTION_DEFAULT = datetime(2000, 1, 1)


def is_empty(value: Any) -> bool:
    """Return True for null values and strings that are blank after trimming."""

    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def to_text(value: Any) -> str:
    """Stringify a raw scalar the way rules and filters compare it."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime | date):
        return value.isoformat()
    return str(value)


def parse_integer(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = to_text(value).strip()
    if INTEGER_PATTERN.match(text):
        return int(text)
    return None


def parse_number(value: Any, remove_chars: str | None = None) -> float | None:
    """Parse a number, stripping currency symbols, thousands separators and ``remove_chars``."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    text = to_text(value)
    if remove_chars:
        text = "".join(char for char in text if char not in remove_chars)
    text = "".join(char for char in text if char not in CURRENCY_CHARACTERS).strip()
    if not NUMBER_PATTERN.match(text):
        return None
    return float(text)


def parse_percentage(value: Any, as_decimal: bool = True) -> float | None:
    text = to_text(value).strip()
    if text.endswith("%"):
        text = text[:-1].strip()
    number = parse_number(text)
    if number is None:
        return None
    return number / 100 if as_decimal else number


def parse_boolean(
    value: Any,
    true_values: list[str] | tuple[str, ...] | None = None,
    false_values: list[str] | tuple[str, ...] | None = None,
) -> bool | None:
    """Match a case-folded value against the true/false vocabularies."""

    if isinstance(value, bool):
        return value
    truthy = {item.strip().casefold() for item in (true_values or DEFAULT_TRUE_VALUES)}
    falsy = {item.strip().casefold() for item in (false_values or DEFAULT_FALSE_VALUES)}
    folded = to_text(value).strip().casefold()
    if folded in truthy:
        return True
    if folded in falsy:
        return False
    return None


def strptime_format(fmt: str) -> str:
    """Translate a token date format (``MM/DD/YYYY``) into a strptime pattern.

    Formats already written with ``%`` directives are returned unchanged.
    """

    if "%" in fmt:
        return fmt
    return _DATE_TOKEN_PATTERN.sub(lambda match: _DATE_TOKEN_MAP[match.group(0)], fmt)


def parse_date(value: Any, fmt: str) -> str | None:
    """Parse ``value`` with ``fmt`` and return an ISO date or datetime string."""

    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    pattern = strptime_format(fmt)
    try:
        parsed = datetime.strptime(to_text(value).strip(), pattern)
    except ValueError:
        return None
    if any(directive in pattern for directive in _TIME_DIRECTIVES):
        return parsed.isoformat()
    return parsed.date().isoformat()


def detect_date(value: Any) -> tuple[bool, bool]:
    """Return ``(is_date, has_time)`` for a raw value.

    Only ISO, slash-separated and month-name shapes are considered, so numbers
    and phone numbers are never mistaken for dates.
    """

    if isinstance(value, datetime):
        return True, True
    if isinstance(value, date):
        return True, False
    if isinstance(value, bool | int | float):
        return False, False
    text = to_text(value).strip()
    shaped = (
        ISO_DATE_PATTERN.match(text) is not None
        or SLASH_DATE_PATTERN.match(text) is not None
        or (MONTH_NAME_PATTERN.search(text) is not None and any(ch.isdigit() for ch in text))
    )
    if not shaped:
        return False, False
    try:
        date_parser.parse(text, default=_DETECTION_DEFAULT)
    except (ValueError, OverflowError):
        return False, False
    return True, TIME_COMPONENT.search(text) is not None


def is_email(value: Any) -> bool:
    return isinstance(value, str) and EMAIL_PATTERN.match(value.strip()) is not None


def _phone_digits(text: str) -> str | None:
    if not PHONE_CHARACTERS.match(text):
        return None
    digits = re.sub(r"\D", "", text)
    if text.startswith("+"):
        return digits if 8 <= len(digits) <= 15 else None
    if len(digits) == 10:
        return f"1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return digits
    return None


def is_phone(value: Any) -> bool:
    return isinstance(value, str) and _phone_digits(value.strip()) is not None


def format_phone(value: Any, fmt: str = "e164") -> str | None:
    """Normalize a phone number to ``e164``, ``national`` or ``digits`` format."""

    if not isinstance(value, str):
        return None
    digits = _phone_digits(value.strip())
    if digits is None:
        return None
    north_american = len(digits) == 11 and digits.startswith("1")
    if fmt == "digits":
        return digits[1:] if north_american else digits
    if fmt == "national" and north_american:
        local = digits[1:]
        return f"({local[:3]}) {local[3:6]}-{local[6:]}"
    return f"+{digits}"


def is_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    text = value.strip()
    if not text or any(ch.isspace() for ch in text):
        return False
    parsed = urlparse(text)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def to_snake_case(name: str) -> str:
    """Normalize a header such as ``First Name`` into ``first_name``."""

    cleaned = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name.strip())
    cleaned = re.sub(r"[^0-9A-Za-z]+", "_", cleaned)
    return cleaned.strip("_").lower()
