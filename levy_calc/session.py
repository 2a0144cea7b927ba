"""Session state for an interactive estimate.

An ``EstimateSession`` owns the configuration and the litres entered for each
arrears index while a user works on one estimate. Every setter coerces its
input to a safe value, and ``recompute`` re-runs the engine from scratch.
Litres are never dropped when the arrears count shrinks, so shrinking and
then growing the schedule brings earlier entries back.

The session can be flattened to a JSON-compatible dict; the web layer keeps
these snapshots per browser between requests.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from typing import Any, Dict, Optional

from PIL import Image

from .data_models import Estimate, EstimateConfig, Signatory
from .engine import compute_schedule, cost_breakdown
from .utils import (
    coerce_count,
    coerce_decimal,
    coerce_year_month,
    format_year_month,
    parse_year_month,
)

logger = logging.getLogger(__name__)


def decode_signature(data: str) -> tuple[bytes, str]:
    """Decode a base64 image, optionally given as a ``data:`` URL.

    Returns the image bytes and the MIME type. Raises ``ValueError`` when the
    payload is not valid base64.
    """
    mime = "image/png"
    payload = data.strip()
    if payload.startswith("data:"):
        header, _, payload = payload.partition(",")
        mime = header[len("data:"):].split(";")[0] or mime
    try:
        return base64.b64decode(payload, validate=True), mime
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Signature is not a valid base64 image") from exc


def verify_image(data: bytes) -> None:
    """Raise ``ValueError`` unless ``data`` decodes as an image Pillow can read."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise ValueError("Signature must be an image file") from exc


class EstimateSession:
    """Mutable, single-user estimate state."""

    def __init__(self, config: Optional[EstimateConfig] = None, signatory: Optional[Signatory] = None) -> None:
        self.config = config or EstimateConfig()
        self.signatory = signatory or Signatory()

    def set_base_month(self, value: str) -> None:
        self.config.base_month = coerce_year_month(value, self.config.base_month)

    def set_arrears_count(self, value: object) -> None:
        # stored litres above the new count stay in the map
        self.config.arrears_count = coerce_count(value)

    def set_unit_price(self, value: object) -> None:
        self.config.unit_price = coerce_decimal(value)

    def set_period_fee(self, value: object) -> None:
        self.config.period_fee = coerce_decimal(value)

    def set_quantity(self, m: int, value: object) -> None:
        if m < 0:
            logger.debug("Ignoring litres for negative arrears index %d", m)
            return
        self.config.quantities[m] = coerce_decimal(value)

    def set_officer_name(self, name: Optional[str]) -> None:
        self.signatory.officer_name = (name or "").strip()

    def set_signature(self, image: Optional[bytes], mime: str = "image/png") -> None:
        if image:
            verify_image(image)
        self.signatory.signature = image or None
        self.signatory.signature_mime = mime

    def signature_data_url(self) -> Optional[str]:
        if not self.signatory.signature:
            return None
        encoded = base64.b64encode(self.signatory.signature).decode("ascii")
        return f"data:{self.signatory.signature_mime};base64,{encoded}"

    def recompute(self) -> Estimate:
        """Run the engine over the current state and return the estimate."""
        rows, totals = compute_schedule(self.config)
        breakdown = cost_breakdown(rows, totals, self.config.period_fee)
        return Estimate(config=self.config, rows=rows, totals=totals, breakdown=breakdown)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_month": format_year_month(self.config.base_month),
            "arrears_count": self.config.arrears_count,
            "unit_price": str(self.config.unit_price),
            "period_fee": str(self.config.period_fee),
            # JSON object keys must be strings
            "quantities": {str(m): str(q) for m, q in self.config.quantities.items()},
            "officer_name": self.signatory.officer_name,
            "signature": self.signature_data_url(),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EstimateSession":
        """Rebuild a session from ``to_dict`` output; missing keys keep defaults."""
        session = cls()
        if not data:
            return session
        if data.get("base_month"):
            session.config.base_month = parse_year_month(data["base_month"])
        if "arrears_count" in data:
            session.set_arrears_count(data["arrears_count"])
        if "unit_price" in data:
            session.set_unit_price(data["unit_price"])
        if "period_fee" in data:
            session.set_period_fee(data["period_fee"])
        if "quantities" in data:
            session.config.quantities = {
                int(m): coerce_decimal(q) for m, q in data["quantities"].items()
            }
        session.set_officer_name(data.get("officer_name"))
        if data.get("signature"):
            image, mime = decode_signature(data["signature"])
            session.set_signature(image, mime)
        return session
