"""Utility functions for the levy calculator.

This module provides helpers for parsing user input into Python data types and
for handling dates, including shifting by whole months and normalizing
year-month strings to ``datetime.date`` instances. Two families of parsers
live here: strict ones (``parse_year_month``, ``decimal_from_str``) that raise
``ValueError`` on bad input, and lenient ``coerce_*`` ones used by the form
layer, which normalize anything invalid to a safe default instead.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext, localcontext

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

logger = logging.getLogger(__name__)

# Form input limits: larger amounts fall back to the default, larger counts are clamped.
MAX_INPUT_VALUE = Decimal("1e12")
MAX_ARREARS_COUNT = 600
MIN_BASE_YEAR = 1900


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Parameters
    ----------
    ym: str
        A string in the form ``"YYYY-MM"``. The day component, if present,
        will be ignored.

    Returns
    -------
    date
        A date object representing the first day of the specified month.

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.strip().split("-")
        if len(parts) < 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        return date(year, month, 1)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    ``months`` may be negative. The day of the month is clamped to the last
    valid day if needed (e.g., subtracting one month from Mar 31 yields
    Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def last_day_of_month(dt: date) -> date:
    return date(dt.year, dt.month, calendar.monthrange(dt.year, dt.month)[1])


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails or the value is not
    finite.
    """
    try:
        cleaned = str(value).strip().replace(",", "")
        result = Decimal(cleaned)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def round_half_up(value: Decimal) -> Decimal:
    """Round to the nearest whole number, halves away from zero.

    ``round()`` on floats rounds halves to even, which would turn 3146.5
    into 3146; the printed estimate needs 3147.
    """
    with localcontext() as ctx:
        # quantize fails when the integer part has more digits than prec
        ctx.prec = max(28, value.adjusted() + 2)
        return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def coerce_decimal(value: object, default: Decimal = Decimal("0")) -> Decimal:
    """Lenient numeric parse for form fields.

    Empty, non-numeric, non-finite and negative inputs all become
    ``default``, as does anything above ``MAX_INPUT_VALUE``.
    """
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = decimal_from_str(str(value))
        except ValueError:
            logger.debug("Coercing non-numeric input %r to %s", value, default)
            return default
    if not result.is_finite() or result < 0 or result > MAX_INPUT_VALUE:
        logger.debug("Coercing out-of-range input %r to %s", value, default)
        return default
    return result


def coerce_count(value: object, minimum: int = 1, maximum: int = MAX_ARREARS_COUNT) -> int:
    """Parse an arrears count, clamped to ``[minimum, maximum]`` (non-numeric → minimum)."""
    try:
        count = int(str(value).strip())
    except (TypeError, ValueError):
        logger.debug("Coercing non-numeric count %r to %d", value, minimum)
        return minimum
    if count > maximum:
        logger.debug("Clamping arrears count %d to %d", count, maximum)
        return maximum
    return max(minimum, count)


def coerce_year_month(value: object, fallback: date) -> date:
    """Parse a year-month, keeping ``fallback`` when the value is unusable."""
    if not value:
        return fallback
    try:
        parsed = parse_year_month(str(value))
    except ValueError:
        logger.debug("Ignoring invalid base month %r", value)
        return fallback
    if parsed.year < MIN_BASE_YEAR:
        logger.debug("Ignoring base month before %d: %r", MIN_BASE_YEAR, value)
        return fallback
    return parsed


def format_year_month(dt: date) -> str:
    return dt.strftime("%Y-%m")


def format_money(value: Decimal, places: int = 2) -> str:
    """Thousands-separated amount, e.g. ``2,517.20``."""
    return f"{value:,.{places}f}"


def format_percent(rate: Decimal) -> str:
    """Penalty rate as shown in the table, e.g. ``25.0%``."""
    return f"{rate * 100:.1f}%"
