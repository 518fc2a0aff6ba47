"""Tests for money rounding and currency helpers."""

from decimal import Decimal

import pytest

from ticketing.services.money import (
    Money,
    calculate_percentage,
    format_currency,
    parse_currency_to_cents,
    percent_of,
    round_half_up,
)


class TestRounding:
    """Money rounds half-up, unlike Python's banker's round()."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (Decimal("2.5"), 3),
            (Decimal("0.5"), 1),
            (Decimal("1.49"), 1),
            (Decimal("3.5"), 4),
            (Decimal("-2.5"), -3),
            (2, 2),
        ],
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_differs_from_builtin_round_on_ties(self):
        assert round(2.5) == 2
        assert round_half_up(2.5) == 3

    def test_percent_of_tie_rounds_up(self):
        # 50p at 5% = 2.5p
        assert percent_of(50, 5) == 3

    def test_percent_of_float_rate_is_exact(self):
        # 8.5% of 1000 = 85 exactly, no binary noise
        assert percent_of(1000, 8.5) == 85
        assert percent_of(333, 8.5) == 28  # 28.305


class TestFormatting:
    def test_gbp_default(self):
        assert format_currency(1000) == "£10.00"

    def test_thousands_separator(self):
        assert format_currency(625000) == "£6,250.00"

    def test_other_currencies(self):
        assert format_currency(199, "USD") == "$1.99"
        assert format_currency(199, "EUR") == "€1.99"
        assert format_currency(199, "JPY") == "JPY1.99"

    def test_negative(self):
        assert format_currency(-100) == "-£1.00"

    def test_none(self):
        assert format_currency(None) == "-"

    def test_money_str(self):
        assert str(Money(250)) == "£2.50"
        assert str(Money(-125_050, "USD")) == "-$1,250.50"


class TestParsing:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("50.00", 5000),
            ("£50.00", 5000),
            ("-50.00", -5000),
            ("£1,234.56", 123456),
            (12.5, 1250),
            ("", 0),
            (None, 0),
            ("abc", 0),
        ],
    )
    def test_parse_currency_to_cents(self, text, expected):
        assert parse_currency_to_cents(text) == expected


def test_calculate_percentage():
    assert calculate_percentage(25, 200) == 12.5
    assert calculate_percentage(5, 0) == 0
