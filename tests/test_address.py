"""Tests for destination normalization."""

import pytest

from src.transport.address import normalize_address


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("9876543210", "919876543210@c.us"),
        ("98765 43210", "919876543210@c.us"),
        ("(987) 654-3210", "919876543210@c.us"),
        ("+91 98765 43210", "919876543210@c.us"),
        ("919876543210", "919876543210@c.us"),
        ("15551234567", "15551234567@c.us"),
        ("12345", "12345@c.us"),
    ],
)
def test_normalize(raw: str, expected: str) -> None:
    assert normalize_address(raw) == expected


def test_ten_digits_already_starting_with_country_code_not_prefixed() -> None:
    # 10 digits that happen to begin with "91" are left alone
    assert normalize_address("9123456789") == "9123456789@c.us"


def test_suffixed_input_returned_unchanged() -> None:
    assert normalize_address("anything-goes@c.us") == "anything-goes@c.us"


def test_idempotent() -> None:
    for raw in ("9876543210", "+1 (555) 123-4567", "abc"):
        once = normalize_address(raw)
        assert normalize_address(once) == once


def test_custom_country_code_and_suffix() -> None:
    result = normalize_address("5551234567", country_code="1", suffix="@s.whatsapp.net")
    assert result == "15551234567@s.whatsapp.net"


def test_no_digits_yields_bare_suffix() -> None:
    assert normalize_address("not a number") == "@c.us"
