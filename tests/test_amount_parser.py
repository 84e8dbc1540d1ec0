"""Tests for amount parsing."""

import pytest
from decimal import Decimal

from ledgerkit.utils.amount_parser import parse_amount, parse_non_negative_amount


@pytest.mark.parametrize(
    "text,expected",
    [
        ("123.45", Decimal("123.45")),
        ("$123.45", Decimal("123.45")),
        ("₹1,234.56", Decimal("1234.56")),
        ("-123.45", Decimal("-123.45")),
        ("-$123.45", Decimal("-123.45")),
        ("(123.45)", Decimal("-123.45")),
        ("123.45 DR", Decimal("-123.45")),
        ("123.45 cr", Decimal("123.45")),
        ("  €10 ", Decimal("10")),
    ],
)
def test_parse_amount_formats(text, expected):
    assert parse_amount(text) == expected


def test_parse_amount_numeric_values():
    assert parse_amount(Decimal("5.10")) == Decimal("5.10")
    assert parse_amount(12) == Decimal("12")
    # Floats go through their string form so 0.1 stays 0.1
    assert parse_amount(0.1) == Decimal("0.1")


@pytest.mark.parametrize("text", ["", "  ", None, "abc", "12..5", "NaN", "Infinity"])
def test_parse_amount_invalid(text):
    with pytest.raises(ValueError):
        parse_amount(text)


def test_parse_non_negative_amount():
    assert parse_non_negative_amount("0") == Decimal("0")
    assert parse_non_negative_amount("1,000") == Decimal("1000")
    with pytest.raises(ValueError, match="cannot be negative"):
        parse_non_negative_amount("-1")
