"""Command‑line interface for the levy calculator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can compute the full arrears schedule, view the totals and
cost breakdown, or write the printable PDF estimate. Schedules can be printed
to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .data_models import (
    DEFAULT_ARREARS_COUNT,
    DEFAULT_BASE_MONTH,
    DEFAULT_CF,
    DEFAULT_PRICE,
    EstimateConfig,
    ScheduleRow,
    ScheduleTotals,
    Signatory,
    default_quantities,
)
from .document import render_estimate_pdf
from .engine import compute_schedule, cost_breakdown
from .formatter import print_breakdown, print_schedule, print_totals
from .session import EstimateSession
from .utils import (
    MAX_ARREARS_COUNT,
    MAX_INPUT_VALUE,
    MIN_BASE_YEAR,
    decimal_from_str,
    format_year_month,
    parse_year_month,
)


def parse_amount(value: str) -> str:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("6293") and shorthand with a ``k`` suffix (e.g.,
    "10.4k" meaning 10_400). Returns a normalized numeric string so callers
    can build a ``Decimal`` without float rounding.
    """
    value = value.strip().lower().replace(",", "")
    factor = 1
    if value.endswith("k"):
        factor = 1_000
        value = value[:-1]
    try:
        amount = decimal_from_str(value) * factor
    except (ValueError, ArithmeticError):
        raise click.BadParameter(f"Invalid amount: {value}")
    if amount < 0:
        raise click.BadParameter(f"Amount must not be negative: {value}")
    if amount > MAX_INPUT_VALUE:
        raise click.BadParameter(f"Amount must not exceed {MAX_INPUT_VALUE:,f}: {value}")
    return str(amount)


def parse_quantity_strings(values: Tuple[str, ...]) -> Dict[int, Decimal]:
    quantities: Dict[int, Decimal] = {}
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise click.BadParameter(f"Quantity must be in M:LITRES format; got {item}")
        m_str, litres = parts
        try:
            m = int(m_str)
        except ValueError:
            raise click.BadParameter(f"Arrears index must be an integer; got {m_str}")
        if m < 0:
            raise click.BadParameter(f"Arrears index must not be negative; got {m}")
        quantities[m] = decimal_from_str(parse_amount(litres))
    return quantities


def build_config_from_options(
    base_month: str,
    arrears: int,
    price: str,
    fee: str,
    quantity: Tuple[str, ...],
) -> EstimateConfig:
    try:
        base_dt = parse_year_month(base_month)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    if base_dt.year < MIN_BASE_YEAR:
        raise click.BadParameter(f"Base month must be in {MIN_BASE_YEAR} or later")
    if arrears < 1:
        raise click.BadParameter("Arrears count must be at least 1")
    if arrears > MAX_ARREARS_COUNT:
        raise click.BadParameter(f"Arrears count must be at most {MAX_ARREARS_COUNT}")
    # Without explicit --quantity entries the pre-filled litres are used
    quantities = parse_quantity_strings(quantity) if quantity else default_quantities()
    return EstimateConfig(
        base_month=base_dt,
        arrears_count=arrears,
        unit_price=decimal_from_str(parse_amount(price)),
        period_fee=decimal_from_str(parse_amount(fee)),
        quantities=quantities,
    )


def row_to_dict(row: ScheduleRow) -> Dict[str, Any]:
    return {
        "m": row.m,
        "month": row.month_label,
        "litres": float(row.quantity),
        "levy": float(row.levy),
        "penalty_rate": float(row.penalty_rate),
        "penalty": float(row.penalty),
        "amount": float(row.amount),
        "total": float(row.total),
    }


def totals_to_dict(totals: ScheduleTotals) -> Dict[str, Any]:
    return {
        "litres": float(totals.quantity),
        "levy": float(totals.levy),
        "penalty": float(totals.penalty),
        "amount": float(totals.amount),
        "total": float(totals.total),
    }


def export_to_json(path: Path, config: EstimateConfig, rows: List[ScheduleRow], totals: ScheduleTotals) -> None:
    """Export schedule and totals to a JSON file."""
    data = {
        "base_month": format_year_month(config.base_month),
        "arrears_count": config.arrears_count,
        "unit_price": float(config.unit_price),
        "cf_fee": float(config.period_fee),
        "totals": totals_to_dict(totals),
        "schedule": [row_to_dict(r) for r in rows],
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, rows: List[ScheduleRow]) -> None:
    """Export schedule to a CSV file."""
    header = ["Month", "M", "Litres", "Levy", "Penalty_Rate", "Penalty", "Amount", "Total"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for r in rows:
            writer.writerow(
                [
                    r.month_label,
                    r.m,
                    r.quantity,
                    r.levy,
                    r.penalty_rate,
                    r.penalty,
                    r.amount,
                    r.total,
                ]
            )


def estimate_options(func):
    """Options shared by every command that builds an estimate."""
    options = [
        click.option("--base-month", "-b", "base_month", default=format_year_month(DEFAULT_BASE_MONTH), show_default=True, help="Current billing month (YYYY-MM)"),
        click.option("--arrears", "-a", "arrears", type=int, default=DEFAULT_ARREARS_COUNT, show_default=True, help="Highest arrears index (m)"),
        click.option("--price", "-p", "price", default=str(DEFAULT_PRICE), show_default=True, help="Levy per litre"),
        click.option("--fee", "-f", "fee", default=str(DEFAULT_CF), show_default=True, help="CF fee per period with litres"),
        click.option("--quantity", "-q", "quantity", multiple=True, help="Litres for one period in M:LITRES format"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
def cli() -> None:
    """A command‑line consumer safety levy calculator."""
    logging.basicConfig(
        level=os.environ.get("LEVY_LOG_LEVEL", "WARNING").upper(),
        format="[%(asctime)s] %(levelname)s in %(module)s: %(message)s",
    )


@cli.command()
@estimate_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    base_month: str,
    arrears: int,
    price: str,
    fee: str,
    quantity: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print the full arrears schedule."""
    config = build_config_from_options(base_month, arrears, price, fee, quantity)
    rows, totals = compute_schedule(config)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, config, rows, totals)
            click.echo(f"Schedule exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, rows)
            click.echo(f"Schedule exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
    else:
        print_totals(totals)
        print_schedule(rows)


@cli.command()
@estimate_options
def summary(
    base_month: str,
    arrears: int,
    price: str,
    fee: str,
    quantity: Tuple[str, ...],
) -> None:
    """Compute and print only the totals and cost distribution."""
    config = build_config_from_options(base_month, arrears, price, fee, quantity)
    rows, totals = compute_schedule(config)
    print_totals(totals)
    print_breakdown(cost_breakdown(rows, totals, config.period_fee))


@cli.command()
@estimate_options
@click.option("--output", "output", required=True, type=click.Path(dir_okay=False), help="PDF file to write")
@click.option("--officer", "officer", default="", help="Signing officer name")
@click.option("--signature", "signature", type=click.Path(exists=True, dir_okay=False), help="Signature image (PNG/JPEG)")
def pdf(
    base_month: str,
    arrears: int,
    price: str,
    fee: str,
    quantity: Tuple[str, ...],
    output: str,
    officer: str,
    signature: Optional[str],
) -> None:
    """Write the printable estimate as a PDF."""
    config = build_config_from_options(base_month, arrears, price, fee, quantity)
    session = EstimateSession(config, Signatory())
    session.set_officer_name(officer)
    if signature:
        sig_path = Path(signature)
        mime = "image/jpeg" if sig_path.suffix.lower() in (".jpg", ".jpeg") else "image/png"
        try:
            session.set_signature(sig_path.read_bytes(), mime)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--signature")
    buffer = render_estimate_pdf(session.recompute(), session.signatory)
    Path(output).write_bytes(buffer.getvalue())
    click.echo(f"Estimate written to {output}")


if __name__ == "__main__":
    cli()
