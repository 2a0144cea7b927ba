from datetime import date
from decimal import Decimal

import pytest

from levy_calc.data_models import EstimateConfig
from levy_calc.engine import (
    compounding_factor,
    compute_schedule,
    cost_breakdown,
    month_label,
    penalty_rate,
    summarize,
)
from levy_calc.utils import add_months


def make_config(**overrides):
    values = dict(
        base_month=date(2026, 1, 1),
        arrears_count=4,
        unit_price=Decimal("0.40"),
        period_fee=Decimal("50"),
        quantities={
            1: Decimal("6293"),
            2: Decimal("6379"),
            3: Decimal("7094"),
            4: Decimal("10422"),
        },
    )
    values.update(overrides)
    return EstimateConfig(**values)


def test_one_row_per_arrears_index():
    rows, _ = compute_schedule(make_config(arrears_count=7))
    assert [r.m for r in rows] == list(range(8))


def test_current_month_without_penalty():
    config = make_config(quantities={0: Decimal("5000")})
    rows, _ = compute_schedule(config)
    row = rows[0]
    assert row.penalty_rate == 0
    assert row.penalty == 0
    assert row.levy == Decimal("2000")
    assert row.amount == Decimal("2000")
    assert row.total == Decimal("2050")


def test_first_arrears_month_is_flat_quarter():
    assert penalty_rate(1) == Decimal("0.25")
    assert compounding_factor(1) == 1
    assert compounding_factor(0) == 0


@pytest.mark.parametrize("m", range(2, 15))
def test_general_formula_for_older_months(m):
    expected = Decimal("1.25") * Decimal("1.12") ** (m - 1) - 1
    assert penalty_rate(m) == expected


def test_penalty_rate_strictly_increasing_from_m2():
    rates = [penalty_rate(m) for m in range(1, 30)]
    assert all(a < b for a, b in zip(rates, rates[1:]))


def test_scenario_a_rows():
    rows, totals = compute_schedule(make_config())

    assert rows[0].levy == 0 and rows[0].penalty == 0
    assert rows[0].amount == 0 and rows[0].total == 0

    m1 = rows[1]
    assert m1.levy == Decimal("2517.20")
    assert m1.penalty_rate == Decimal("0.25")
    assert m1.penalty == Decimal("629.30")
    # 3146.50 rounds half up
    assert m1.amount == Decimal("3147")
    assert m1.total == Decimal("3197")

    m2 = rows[2]
    assert m2.penalty_rate == Decimal("0.40")
    assert m2.amount == Decimal("3572")
    assert m2.total == Decimal("3622")

    m3 = rows[3]
    assert m3.penalty_rate == Decimal("0.568")
    assert m3.penalty == Decimal("1611.7568")
    assert m3.total == Decimal("4499")

    m4 = rows[4]
    assert m4.penalty_rate == Decimal("0.75616")
    assert m4.levy == Decimal("4168.80")
    assert m4.penalty == Decimal("3152.279808")
    assert m4.amount == Decimal("7321")
    assert m4.total == Decimal("7371")

    assert totals.quantity == Decimal("30188")
    assert totals.levy == Decimal("12075.20")
    assert totals.penalty == Decimal("6413.976608")
    assert totals.amount == Decimal("18489")
    assert totals.total == Decimal("18689")


def test_totals_are_row_sums():
    rows, totals = compute_schedule(make_config(arrears_count=9, quantities={m: Decimal(1000 + m) for m in range(10)}))
    assert totals.total == sum(r.total for r in rows)
    assert totals.penalty == sum(r.penalty for r in rows)
    assert summarize(reversed(rows)) == totals


def test_no_fee_for_months_without_litres():
    config = make_config(period_fee=Decimal("75"), quantities={2: Decimal("100")})
    rows, _ = compute_schedule(config)
    for row in rows:
        if row.m == 2:
            assert row.total == row.amount + Decimal("75")
        else:
            assert row.total == 0


def test_quantities_beyond_count_are_ignored():
    config = make_config(arrears_count=2)
    rows, totals = compute_schedule(config)
    assert len(rows) == 3
    assert totals.quantity == Decimal("6293") + Decimal("6379")


def test_single_arrears_period():
    rows, _ = compute_schedule(make_config(arrears_count=1))
    assert [r.m for r in rows] == [0, 1]
    assert rows[0].month_label == rows[1].month_label


def test_zero_price_keeps_fee():
    rows, totals = compute_schedule(make_config(unit_price=Decimal("0")))
    for row in rows:
        assert row.levy == 0
        assert row.penalty == 0
    assert [r.total for r in rows] == [0, 50, 50, 50, 50]
    assert totals.total == Decimal("200")


def test_month_labels():
    base = date(2026, 1, 1)
    assert month_label(base, 0) == "Jan-26"
    assert month_label(base, 1) == "Jan-26"
    assert month_label(base, 2) == "Dec-25"
    assert month_label(base, 4) == "Oct-25"
    for k in range(2, 30):
        assert month_label(base, k) == add_months(base, -(k - 1)).strftime("%b-%y")


def test_recompute_is_idempotent():
    config = make_config()
    assert compute_schedule(config) == compute_schedule(config)


def test_cost_breakdown_counts_charged_periods():
    config = make_config(quantities={1: Decimal("10"), 3: Decimal("20")})
    rows, totals = compute_schedule(config)
    breakdown = cost_breakdown(rows, totals, config.period_fee)
    assert breakdown.fees == Decimal("100")
    assert breakdown.levy == totals.levy
    assert breakdown.penalty == totals.penalty
    assert [item["name"] for item in breakdown.as_chart_data()] == ["Levy", "Penalty", "CF Fees"]


def test_huge_litres_round_without_overflow():
    rows, totals = compute_schedule(make_config(arrears_count=1, quantities={1: Decimal("1e30")}))
    # levy 4e29 plus a quarter penalty
    assert rows[1].amount == Decimal("5e29")
    assert totals.amount == rows[1].amount


def test_long_schedule_with_litres_in_oldest_month():
    rows, _ = compute_schedule(make_config(arrears_count=600, quantities={600: Decimal("1")}))
    last = rows[600]
    assert len(rows) == 601
    assert last.amount == last.amount.to_integral_value()
    assert last.amount > 10 ** 28
    assert last.total >= last.amount
    assert last.month_label == "Feb-76"
