"""Printable estimate document.

Renders the schedule as a one-page PDF with the issuing office header, the
arrears table, the validity date and the signing officer block. The layout
mirrors the print view of the web app; it is a re-layout of the same
estimate, not a separate data format.
"""

from __future__ import annotations

import io
import logging
import os
import textwrap
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from .data_models import Estimate, Signatory
from .utils import format_money, last_day_of_month

logger = logging.getLogger(__name__)

ESTIMATE_TITLE = "CONSUMER SAFETY LEVY ESTIMATE"
PAYMENT_NOTE = (
    "Levy is due before the 10th of every month and is payable immediately upon "
    "submission, as stipulated by the Dairy Industry Act (Cap 336) and its "
    "subsidiary regulations."
)


@dataclass(frozen=True)
class OfficeDetails:
    """Issuing office printed in the estimate header."""

    name: str
    address: str
    phone: str

    @classmethod
    def from_env(cls) -> "OfficeDetails":
        """Load the header text from environment variables."""

        return cls(
            name=os.getenv("LEVY_OFFICE_NAME", "Kenya Dairy Board - Kericho"),
            address=os.getenv("LEVY_OFFICE_ADDRESS", "Ardhi House (Huduma Centre) 5th Floor, Wing B."),
            phone=os.getenv("LEVY_OFFICE_PHONE", "Tel: 0717997465 / 0734026367"),
        )


def validity_date(today: Optional[date] = None) -> str:
    """Return the last day of the current month, e.g. ``31 October 2026``."""
    last = last_day_of_month(today or date.today())
    return f"{last.day} {last:%B %Y}"


def table_rows(estimate: Estimate) -> List[List[str]]:
    """Header, one line per period and a totals line, as printed."""
    data = [["Month", "Arrears (m)", "Litres", "Levy", "Penalty (Ksh)", "Total (Ksh)"]]
    for row in estimate.rows:
        data.append(
            [
                row.month_label,
                str(row.m),
                format_money(row.quantity, 0),
                format_money(row.levy),
                format_money(row.penalty),
                format_money(row.total, 0),
            ]
        )
    totals = estimate.totals
    data.append(
        [
            "TOTALS",
            "",
            format_money(totals.quantity, 0),
            format_money(totals.levy),
            format_money(totals.penalty),
            format_money(totals.total, 0),
        ]
    )
    return data


def render_estimate_pdf(
    estimate: Estimate,
    signatory: Optional[Signatory] = None,
    office: Optional[OfficeDetails] = None,
    today: Optional[date] = None,
) -> io.BytesIO:
    """Create the printable PDF for ``estimate`` and return it as a buffer."""

    office = office or OfficeDetails.from_env()
    signatory = signatory or Signatory()
    today = today or date.today()
    config = estimate.config

    logger.info("Generating estimate PDF with %d rows", len(estimate.rows))
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    centre = width / 2

    y_position = height - 60
    pdf.setFont("Helvetica-Bold", 14)
    pdf.drawCentredString(centre, y_position, office.name.upper())
    pdf.setFont("Helvetica", 10)
    y_position -= 16
    pdf.drawCentredString(centre, y_position, office.address)
    y_position -= 14
    pdf.drawCentredString(centre, y_position, office.phone)
    y_position -= 30
    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawCentredString(centre, y_position, ESTIMATE_TITLE)

    y_position -= 28
    pdf.setFont("Courier", 9)
    pdf.drawString(50, y_position, f"PRICE PER LITRE: Ksh {config.unit_price:.2f}")
    pdf.drawCentredString(centre, y_position, f"CF FEE: Ksh {config.period_fee:.2f}")
    pdf.drawRightString(width - 50, y_position, f"DATE: {today:%d/%m/%Y}")
    y_position -= 10
    pdf.line(50, y_position, width - 50, y_position)

    table = Table(table_rows(estimate), hAlign="CENTER")
    table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                ("LINEBELOW", (0, 0), (-1, 0), 0.75, colors.black),
                ("BACKGROUND", (0, -1), (-1, -1), colors.HexColor("#f4f4f5")),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ]
        )
    )
    table_width, table_height = table.wrapOn(pdf, width - 100, y_position)
    y_position -= table_height + 20
    table.drawOn(pdf, (width - table_width) / 2, y_position)

    y_position -= 20
    pdf.setFont("Helvetica-BoldOblique", 9)
    pdf.drawRightString(width - 50, y_position, f"This estimate is valid till {validity_date(today)}")
    y_position -= 20
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawRightString(width - 50, y_position, f"Grand Total Due (Ksh): {format_money(estimate.totals.total, 0)}")

    y_position -= 30
    pdf.line(50, y_position, width - 50, y_position)
    y_position -= 16
    text = pdf.beginText(50, y_position)
    text.setFont("Helvetica-Oblique", 9)
    for line in textwrap.wrap(PAYMENT_NOTE, 100):
        text.textLine(line)
    pdf.drawText(text)

    y_position -= 90
    if signatory.signature:
        image = ImageReader(io.BytesIO(signatory.signature))
        pdf.drawImage(image, 60, y_position, width=140, height=40, preserveAspectRatio=True, mask="auto")
    y_position -= 14
    if signatory.officer_name:
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(50, y_position, signatory.officer_name.upper())
        pdf.line(50, y_position - 3, 250, y_position - 3)
    y_position -= 14
    pdf.setFont("Helvetica-Bold", 8)
    pdf.drawString(50, y_position, "AUTHORIZED SIGNATURE")

    pdf.save()
    buffer.seek(0)
    return buffer
