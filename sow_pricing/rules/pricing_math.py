"""
Pricing Math — pure money helpers shared by the normalizer, the budget
fitter and the markdown renderer.

Money rounds half-up on the cent boundary. Percentages are clamped to
[0, 100] even when a table was assembled outside the normalizer.
"""

from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Iterable, Mapping

from sow_pricing.models.schemas import PricingRow, PricingSummary, PricingTable

_CENT = Decimal("0.01")


def to_number(value: Any, fallback: float = 0.0) -> float:
    """Coerce numbers and numeric strings to a finite float, else fallback."""
    if isinstance(value, bool) or value is None:
        return fallback
    try:
        n = float(value)
    except (TypeError, ValueError):
        return fallback
    return n if math.isfinite(n) else fallback


def round_money(value: Any) -> float:
    n = to_number(value, 0.0)
    try:
        return float(Decimal(repr(n)).quantize(_CENT, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return 0.0


def clamp_percent(value: Any, fallback: float = 0.0) -> float:
    n = to_number(value, math.nan)
    if math.isnan(n):
        return fallback
    return max(0.0, min(100.0, n))


def round_to_increment(value: Any, increment: float = 0.5) -> float:
    """Round half-up to the nearest multiple of `increment`."""
    n = to_number(value, 0.0)
    inc = to_number(increment, 0.0)
    if inc <= 0:
        return n
    return math.floor(n / inc + 0.5) * inc


def _row_field(row: Any, *names: str) -> Any:
    if isinstance(row, Mapping):
        for name in names:
            if row.get(name) is not None:
                return row.get(name)
        return None
    for name in names:
        value = getattr(row, name, None)
        if value is not None:
            return value
    return None


def row_hours(row: PricingRow | Mapping[str, Any]) -> float:
    return max(0.0, to_number(_row_field(row, "hours"), 0.0))


def row_rate(row: PricingRow | Mapping[str, Any]) -> float:
    return max(0.0, to_number(_row_field(row, "base_rate", "baseRate", "rate"), 0.0))


def subtotal_ex_gst(rows: Iterable[PricingRow | Mapping[str, Any]]) -> float:
    """Σ hours × rate over the rows, negatives clamped, rounded to cents."""
    return round_money(sum(row_hours(r) * row_rate(r) for r in rows))


def compute_pricing_summary(table: PricingTable | Mapping[str, Any] | None) -> PricingSummary:
    """Subtotal → discount → discounted subtotal → GST → total, all in cents."""
    if isinstance(table, PricingTable):
        rows: list[Any] = list(table.rows)
        currency = table.currency
        raw_discount: Any = table.discount_percent
        raw_gst: Any = table.gst_percent
    else:
        data = table if isinstance(table, Mapping) else {}
        raw_rows = data.get("rows")
        rows = list(raw_rows) if isinstance(raw_rows, list) else []
        rows = [r for r in rows if isinstance(r, (Mapping, PricingRow))]
        currency = data.get("currency") or "AUD"
        raw_discount = data.get("discountPercent", data.get("discount_percent"))
        raw_gst = data.get("gstPercent", data.get("gst_percent"))

    subtotal = subtotal_ex_gst(rows)
    discount_percent = clamp_percent(raw_discount, 0.0)
    gst_percent = clamp_percent(raw_gst, 10.0)

    discount_amount = round_money(subtotal * (discount_percent / 100))
    discounted = round_money(subtotal - discount_amount)

    gst_amount = round_money(discounted * (gst_percent / 100))
    total = round_money(discounted + gst_amount)

    return PricingSummary(
        currency=currency,
        subtotal_ex_gst=subtotal,
        discount_percent=discount_percent,
        discount_amount=discount_amount,
        discounted_subtotal_ex_gst=discounted,
        gst_percent=gst_percent,
        gst_amount=gst_amount,
        total_inc_gst=total,
    )
