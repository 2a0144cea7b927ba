"""Output helpers for the levy calculator.

This module provides simple functions to render levy schedules, totals and
the cost breakdown in a tabular text format, using ``click.echo`` so output
plays well with the CLI test runner.
"""

from __future__ import annotations

from typing import Iterable

import click

from .data_models import CostBreakdown, ScheduleRow, ScheduleTotals
from .utils import format_money, format_percent


def print_totals(totals: ScheduleTotals) -> None:
    """Print the aggregate totals in a human-readable format."""
    click.echo("Totals")
    click.echo("-" * 72)
    click.echo(f"Litres             : {format_money(totals.quantity, 0)}")
    click.echo(f"Levy               : {format_money(totals.levy)}")
    click.echo(f"Penalty            : {format_money(totals.penalty)}")
    click.echo(f"Amount             : {format_money(totals.amount, 0)}")
    click.echo(f"Grand total due    : {format_money(totals.total, 0)}")
    click.echo("-" * 72)


def print_breakdown(breakdown: CostBreakdown) -> None:
    click.echo("Cost distribution")
    click.echo("-" * 72)
    click.echo(f"Levy               : {format_money(breakdown.levy)}")
    click.echo(f"Penalty            : {format_money(breakdown.penalty)}")
    click.echo(f"CF fees            : {format_money(breakdown.fees)}")
    click.echo("-" * 72)


def print_schedule(rows: Iterable[ScheduleRow]) -> None:
    """Print the schedule as a tab-separated table, one line per period."""
    headers = [
        "Month",
        "m",
        "Litres",
        "Levy",
        "Penalty%",
        "Penalty",
        "Amount",
        "Total",
    ]
    click.echo("\t".join(headers))
    for row in rows:
        click.echo(
            "\t".join(
                [
                    row.month_label,
                    str(row.m),
                    format_money(row.quantity, 0),
                    format_money(row.levy),
                    format_percent(row.penalty_rate),
                    format_money(row.penalty),
                    format_money(row.amount, 0),
                    format_money(row.total, 0),
                ]
            )
        )
