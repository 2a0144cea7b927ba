"""Data models for the levy calculator.

This module defines dataclasses representing the entities used by the
calculator: the estimate configuration (base month, arrears count, price, CF
fee and the per-period litres), individual schedule rows, aggregate totals,
the cost breakdown used for charts, and the signing officer details printed
on the estimate. Using dataclasses makes it easy to construct, inspect and
serialize these structures.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

DEFAULT_BASE_MONTH = date(2026, 1, 1)
DEFAULT_ARREARS_COUNT = 4
DEFAULT_PRICE = Decimal("0.40")
DEFAULT_CF = Decimal("50")


def default_quantities() -> Dict[int, Decimal]:
    """Litres pre-filled for a fresh estimate, keyed by arrears index."""
    return {
        1: Decimal("6293"),
        2: Decimal("6379"),
        3: Decimal("7094"),
        4: Decimal("10422"),
    }


@dataclass
class EstimateConfig:
    """Configuration of a levy estimate.

    Attributes
    ----------
    base_month: date
        The current billing month, normalized to the first day of the month.
    arrears_count: int
        Highest arrears index in the schedule. The schedule has
        ``arrears_count + 1`` rows, one for each m in ``0..arrears_count``.
    unit_price: Decimal
        Levy charged per litre.
    period_fee: Decimal
        Fixed CF fee added to every period with recorded litres.
    quantities: Dict[int, Decimal]
        Litres keyed by arrears index. The mapping may be sparse and may hold
        keys above ``arrears_count``; those are ignored by the engine but
        kept so that edits survive when the count shrinks and grows again.
    """

    base_month: date = DEFAULT_BASE_MONTH
    arrears_count: int = DEFAULT_ARREARS_COUNT
    unit_price: Decimal = DEFAULT_PRICE
    period_fee: Decimal = DEFAULT_CF
    quantities: Dict[int, Decimal] = field(default_factory=default_quantities)


@dataclass(frozen=True)
class ScheduleRow:
    """One arrears period of the estimate.

    ``m=0`` and ``m=1`` share a calendar month; only ``m=1`` carries a
    penalty. ``total`` is zero whenever ``quantity`` is zero.
    """

    m: int
    month_label: str
    quantity: Decimal
    levy: Decimal
    penalty_rate: Decimal
    compounding_factor: Decimal
    penalty: Decimal
    amount: Decimal
    total: Decimal


@dataclass(frozen=True)
class ScheduleTotals:
    levy: Decimal = Decimal("0")
    penalty: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    quantity: Decimal = Decimal("0")


@dataclass(frozen=True)
class CostBreakdown:
    """Split of the grand total into levy, penalty and CF fees (charts only)."""

    levy: Decimal
    penalty: Decimal
    fees: Decimal

    def as_chart_data(self) -> List[Dict[str, object]]:
        return [
            {"name": "Levy", "value": float(self.levy), "color": "#3b82f6"},
            {"name": "Penalty", "value": float(self.penalty), "color": "#ef4444"},
            {"name": "CF Fees", "value": float(self.fees), "color": "#10b981"},
        ]


@dataclass
class Signatory:
    """Signing officer details shown on the printed estimate.

    Neither field affects the calculation. ``signature`` holds the raw image
    bytes (PNG or JPEG) as uploaded.
    """

    officer_name: str = ""
    signature: Optional[bytes] = None
    signature_mime: str = "image/png"


@dataclass(frozen=True)
class Estimate:
    """Result of one recomputation: the rows, their totals and the breakdown."""

    config: EstimateConfig
    rows: List[ScheduleRow]
    totals: ScheduleTotals
    breakdown: CostBreakdown
