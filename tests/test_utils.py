from datetime import date
from decimal import Decimal

import pytest

from levy_calc.utils import (
    add_months,
    coerce_count,
    coerce_decimal,
    coerce_year_month,
    decimal_from_str,
    format_money,
    format_percent,
    last_day_of_month,
    parse_year_month,
    round_half_up,
)


def test_parse_year_month():
    assert parse_year_month("2026-01") == date(2026, 1, 1)
    assert parse_year_month("2025-12-17") == date(2025, 12, 1)


@pytest.mark.parametrize("bad", ["", "2026", "2026-13", "jan-26", None])
def test_parse_year_month_rejects(bad):
    with pytest.raises(ValueError):
        parse_year_month(bad)


def test_add_months_backwards_across_year():
    assert add_months(date(2026, 1, 1), -1) == date(2025, 12, 1)
    assert add_months(date(2026, 3, 31), -1) == date(2026, 2, 28)
    assert add_months(date(2026, 1, 1), -25) == date(2023, 12, 1)


def test_last_day_of_month():
    assert last_day_of_month(date(2028, 2, 3)) == date(2028, 2, 29)


def test_round_half_up():
    assert round_half_up(Decimal("3146.5")) == Decimal("3147")
    assert round_half_up(Decimal("2.5")) == Decimal("3")
    assert round_half_up(Decimal("4449.3568")) == Decimal("4449")
    assert round_half_up(Decimal("-2.5")) == Decimal("-3")


def test_round_half_up_beyond_context_precision():
    value = Decimal("12345678901234567890123456789012.5")
    assert round_half_up(value) == Decimal("12345678901234567890123456789013")


def test_decimal_from_str():
    assert decimal_from_str("1,234.50") == Decimal("1234.50")
    with pytest.raises(ValueError):
        decimal_from_str("abc")
    with pytest.raises(ValueError):
        decimal_from_str("NaN")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("0.40", Decimal("0.40")),
        (50, Decimal("50")),
        ("", Decimal("0")),
        (None, Decimal("0")),
        ("abc", Decimal("0")),
        ("-5", Decimal("0")),
        ("inf", Decimal("0")),
        ("1e12", Decimal("1e12")),
        ("1e30", Decimal("0")),
        ("1000000000000.01", Decimal("0")),
    ],
)
def test_coerce_decimal(value, expected):
    assert coerce_decimal(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [("4", 4), ("0", 1), ("-3", 1), ("x", 1), (None, 1), (12, 12), ("600", 600), ("10000000", 600)],
)
def test_coerce_count(value, expected):
    assert coerce_count(value) == expected


def test_coerce_year_month_keeps_fallback():
    fallback = date(2026, 1, 1)
    assert coerce_year_month("2025-06", fallback) == date(2025, 6, 1)
    assert coerce_year_month("garbage", fallback) == fallback
    assert coerce_year_month("", fallback) == fallback
    assert coerce_year_month("0001-01", fallback) == fallback


def test_formatting():
    assert format_money(Decimal("12075.2")) == "12,075.20"
    assert format_money(Decimal("18689"), 0) == "18,689"
    assert format_percent(Decimal("0.25")) == "25.0%"
    assert format_percent(Decimal("0.75616")) == "75.6%"
