"""Tests for scalar parsing helpers."""

from __future__ import annotations

import pytest

from sift_sync.cleaning import values


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("42", 42.0), ("$1,200.50", 1200.5), ("-3", -3.0), (".5", 0.5), (7, 7.0), ("12abc", None), (True, None)],
)
def test_parse_number(raw, expected):
    assert values.parse_number(raw) == expected


def test_parse_number_strips_extra_characters():
    assert values.parse_number("12 kg", remove_chars="kg") == 12.0


def test_parse_percentage_as_decimal_and_whole():
    assert values.parse_percentage("45%") == pytest.approx(0.45)
    assert values.parse_percentage("45%", as_decimal=False) == 45.0
    assert values.parse_percentage("abc%") is None


def test_parse_boolean_defaults_and_custom_vocabulary():
    assert values.parse_boolean("Yes") is True
    assert values.parse_boolean("off") is False
    assert values.parse_boolean("maybe") is None
    assert values.parse_boolean("si", ["si"], ["no"]) is True
    assert values.parse_boolean("yes", ["si"], ["no"]) is None


def test_strptime_format_translates_tokens():
    assert values.strptime_format("MM/DD/YYYY") == "%m/%d/%Y"
    assert values.strptime_format("YYYY-MM-DD HH:mm:ss") == "%Y-%m-%d %H:%M:%S"
    assert values.strptime_format("%d.%m.%Y") == "%d.%m.%Y"


def test_parse_date_emits_iso_strings():
    assert values.parse_date("03/15/2024", "MM/DD/YYYY") == "2024-03-15"
    assert values.parse_date("2024-03-15 08:30", "YYYY-MM-DD HH:mm") == "2024-03-15T08:30:00"
    assert values.parse_date("15/03/2024", "MM/DD/YYYY") is None


def test_detect_date_shapes():
    assert values.detect_date("2024-01-15") == (True, False)
    assert values.detect_date("2024-01-15T10:30:00Z") == (True, True)
    assert values.detect_date("Jan 5, 2024") == (True, False)
    assert values.detect_date("12345") == (False, False)
    assert values.detect_date("2125551234") == (False, False)


@pytest.mark.parametrize(
    ("raw", "fmt", "expected"),
    [
        ("(212) 555-1234", "e164", "+12125551234"),
        ("212.555.1234", "national", "(212) 555-1234"),
        ("+1 212 555 1234", "digits", "2125551234"),
        ("+44 20 7946 0958", "e164", "+442079460958"),
        ("555-1234", "e164", None),
    ],
)
def test_format_phone(raw, fmt, expected):
    assert values.format_phone(raw, fmt) == expected


def test_email_and_url_predicates():
    assert values.is_email("ada@example.com")
    assert not values.is_email("ada@example")
    assert values.is_url("https://example.com/path")
    assert not values.is_url("example.com")
    assert not values.is_url("ftp://example.com")


def test_to_snake_case():
    assert values.to_snake_case("First Name") == "first_name"
    assert values.to_snake_case("dateOfBirth") == "date_of_birth"
    assert values.to_snake_case("  E-mail Address ") == "e_mail_address"
