"""Core calculation engine for the levy calculator.

This module implements the arrears schedule: for each arrears index ``m`` from
0 to the configured count it derives the levy, the tiered penalty and the
amount due, then reduces the rows into totals. The penalty tiers are:

    m = 0   no penalty (current month)
    m = 1   flat 25 % (current month, late)
    m >= 2  (1.25 * 1.12^(m-1)) - 1, compounding 12 % per month

All arithmetic is done with ``Decimal`` so the rounded amounts are
reproducible. The engine performs no validation; callers coerce inputs first
(see ``levy_calc.utils``).
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, getcontext
from typing import Iterable, List, Tuple

from .data_models import CostBreakdown, EstimateConfig, ScheduleRow, ScheduleTotals
from .utils import add_months, round_half_up

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

BASE_PENALTY = Decimal("0.25")
MONTHLY_COMPOUNDING = Decimal("1.12")
_ZERO = Decimal("0")


def compounding_factor(m: int) -> Decimal:
    """Return ``1.12^(m-1)`` for overdue months, 1 for m=1 and 0 for m=0."""
    if m <= 0:
        return _ZERO
    if m == 1:
        return Decimal("1")
    return MONTHLY_COMPOUNDING ** (m - 1)


def penalty_rate(m: int) -> Decimal:
    """Return the fractional penalty applied to the levy of period ``m``.

    The m=1 tier is returned directly rather than through the general
    formula. The formula happens to give 0.25 at m=1 as well, but the flat
    tier must stay 0.25 if the compounding base is ever changed.
    """
    if m <= 0:
        return _ZERO
    if m == 1:
        return BASE_PENALTY
    return (1 + BASE_PENALTY) * compounding_factor(m) - 1


def month_label(base_month: date, m: int) -> str:
    """Return the calendar label (e.g. ``Jan-26``) for arrears index ``m``.

    m=0 and m=1 both refer to the base month; m=2 is one month earlier, m=3
    two months earlier and so on.
    """
    months_back = 0 if m <= 1 else m - 1
    return add_months(base_month, -months_back).strftime("%b-%y")


def _build_row(config: EstimateConfig, m: int) -> ScheduleRow:
    quantity = config.quantities.get(m) or _ZERO
    levy = quantity * config.unit_price
    rate = penalty_rate(m)
    penalty = levy * rate
    amount = round_half_up(levy + penalty)
    # CF fee is only charged for months with recorded litres
    total = amount + config.period_fee if quantity > 0 else _ZERO
    return ScheduleRow(
        m=m,
        month_label=month_label(config.base_month, m),
        quantity=quantity,
        levy=levy,
        penalty_rate=rate,
        compounding_factor=compounding_factor(m),
        penalty=penalty,
        amount=amount,
        total=total,
    )


def summarize(rows: Iterable[ScheduleRow]) -> ScheduleTotals:
    """Sum levy, penalty, amount, total and quantity over ``rows``."""
    levy = penalty = amount = total = quantity = _ZERO
    for row in rows:
        levy += row.levy
        penalty += row.penalty
        amount += row.amount
        total += row.total
        quantity += row.quantity
    return ScheduleTotals(levy=levy, penalty=penalty, amount=amount, total=total, quantity=quantity)


def compute_schedule(config: EstimateConfig) -> Tuple[List[ScheduleRow], ScheduleTotals]:
    """Compute the arrears schedule and its totals.

    Parameters
    ----------
    config: EstimateConfig
        The estimate configuration. ``arrears_count`` is assumed to be at
        least 1 and the price, fee and quantities non-negative.

    Returns
    -------
    rows: List[ScheduleRow]
        One row per arrears index, ordered from m=0 to ``arrears_count``.
    totals: ScheduleTotals
        Column sums over ``rows``.
    """
    rows = [_build_row(config, m) for m in range(config.arrears_count + 1)]
    totals = summarize(rows)
    logger.debug(
        "Computed %d schedule rows from %s, total due %s",
        len(rows),
        config.base_month.strftime("%Y-%m"),
        totals.total,
    )
    return rows, totals


def cost_breakdown(rows: Iterable[ScheduleRow], totals: ScheduleTotals, period_fee: Decimal) -> CostBreakdown:
    """Split the estimate into levy, penalty and CF fee components."""
    charged_periods = sum(1 for row in rows if row.quantity > 0)
    return CostBreakdown(
        levy=totals.levy,
        penalty=totals.penalty,
        fees=period_fee * charged_periods,
    )
