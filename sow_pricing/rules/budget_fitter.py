"""
Budget Fitter — solve for line-item hours so a table's discounted ex-GST
subtotal lands near a caller-specified budget.

Two phases:
  1. A linear scale of the adjustable rows (or of every row when nothing is
     adjustable, or when the budget cannot cover the mandatory rows), rounded
     to the hour increment, with mandatory rows floored at one increment.
  2. A bounded greedy correction that nudges the largest-hours row up or down
     one increment at a time until the subtotal is within tolerance, no row
     can move, or the iteration cap is reached.

Discount and GST percentages are never touched. The input table is not
modified; a new table with the same row ids and order is returned.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping

from sow_pricing.config import Settings
from sow_pricing.models.enums import WarningType
from sow_pricing.models.schemas import FitResult, PricingRow, PricingTable, PricingWarning
from sow_pricing.rules.pricing_math import (
    clamp_percent,
    round_money,
    round_to_increment,
    row_hours,
    row_rate,
    subtotal_ex_gst,
    to_number,
)
from sow_pricing.rules.rate_card import normalize_role_key
from sow_pricing.rules.rules_config import FitConfig, fit_config
from sow_pricing.utils.hashing import row_id

logger = logging.getLogger(__name__)


def coerce_pricing_table(table: PricingTable | Mapping[str, Any] | None) -> PricingTable:
    """Accept an already-built table or a camelCase mapping of one."""
    if isinstance(table, PricingTable):
        return table
    data = table if isinstance(table, Mapping) else {}
    title = data.get("title") if isinstance(data.get("title"), str) else "Project Pricing"
    raw_rows = data.get("rows") if isinstance(data.get("rows"), list) else []
    rows = [
        PricingRow(
            id=str(r.get("id") or row_id(title, i, str(r.get("role") or ""))),
            role=str(r.get("role") or ""),
            description=str(r.get("description") or ""),
            hours=row_hours(r),
            base_rate=row_rate(r),
        )
        for i, r in enumerate(raw_rows)
        if isinstance(r, Mapping)
    ]
    return PricingTable(
        title=title,
        currency=str(data.get("currency") or "AUD"),
        discount_percent=clamp_percent(data.get("discountPercent", data.get("discount_percent")), 0.0),
        gst_percent=clamp_percent(data.get("gstPercent", data.get("gst_percent")), 10.0),
        rows=rows,
    )


class BudgetFitter:
    """Scale-then-nudge hour allocation against a target budget."""

    def __init__(self, config: FitConfig | None = None):
        self.config = config or fit_config()

    def fit(
        self,
        pricing_table: PricingTable | Mapping[str, Any],
        target_after_discount_ex_gst: Any,
        mandatory_role_names: list[str] | None = None,
    ) -> FitResult:
        table = coerce_pricing_table(pricing_table)
        warnings: list[PricingWarning] = []

        target_after = to_number(target_after_discount_ex_gst, math.nan)
        if math.isnan(target_after) or target_after <= 0:
            logger.debug(f"Ignoring non-positive budget target {target_after_discount_ex_gst!r}")
            return FitResult(pricing_table=table, warnings=warnings)

        discount_percent = clamp_percent(table.discount_percent, 0.0)
        denom = 1 - discount_percent / 100
        if denom <= 0:
            warnings.append(PricingWarning(
                type=WarningType.DISCOUNT_MAKES_BUDGET_UNSCALABLE,
                detail=f"A {discount_percent:g}% discount leaves no pre-discount subtotal to solve for",
                context={"discountPercent": discount_percent},
            ))
            return FitResult(pricing_table=table, warnings=warnings)

        target_subtotal = round_money(target_after / denom)

        names = mandatory_role_names if mandatory_role_names is not None else self.config.mandatory_role_names
        mandatory_keys = {k for k in (normalize_role_key(n) for n in names) if k}

        rows = list(table.rows)
        hours = [row_hours(r) for r in rows]
        rates = [row_rate(r) for r in rows]
        mandatory = [normalize_role_key(r.role) in mandatory_keys for r in rows]

        current = subtotal_ex_gst(rows)
        if current <= 0:
            warnings.append(PricingWarning(
                type=WarningType.CANNOT_SCALE_ZERO_SUBTOTAL,
                detail="Table subtotal is 0; nothing to scale",
            ))
            return FitResult(pricing_table=table, warnings=warnings, target_subtotal_ex_gst=target_subtotal)

        inc = self.config.hour_increment if self.config.hour_increment > 0 else 0.5

        # ── Phase 1: linear scale ────────────────────────
        fixed_subtotal = subtotal_ex_gst(r for r, m in zip(rows, mandatory) if m)
        adjustable_subtotal = subtotal_ex_gst(r for r, m in zip(rows, mandatory) if not m)
        scale_all = not any(not m for m in mandatory) or adjustable_subtotal == 0

        if scale_all:
            factor = target_subtotal / current
        else:
            remaining = target_subtotal - fixed_subtotal
            if remaining <= 0:
                warnings.append(PricingWarning(
                    type=WarningType.BUDGET_BELOW_MANDATORY_COST,
                    detail=(
                        f"Target subtotal {target_subtotal:,.2f} does not cover mandatory "
                        f"roles ({fixed_subtotal:,.2f}); scaling every row"
                    ),
                    context={"targetSubtotalExGst": target_subtotal, "fixedSubtotal": fixed_subtotal},
                ))
                scale_all = True
                factor = target_subtotal / current
            else:
                factor = remaining / adjustable_subtotal

        for i in range(len(rows)):
            if scale_all or not mandatory[i]:
                hours[i] = round_to_increment(max(0.0, hours[i] * factor), inc)
            if mandatory[i]:
                hours[i] = max(inc, hours[i])

        logger.debug(
            f"Scaled '{table.title}' by {factor:.4f} "
            f"({'all rows' if scale_all else 'adjustable rows'}) toward {target_subtotal:,.2f}"
        )

        # ── Phase 2: greedy correction ───────────────────
        tweakable = [i for i in range(len(rows)) if scale_all or not mandatory[i]] or list(range(len(rows)))
        positive_rates = [rates[i] for i in tweakable if rates[i] > 0]
        if positive_rates:
            tolerance = min(positive_rates) * inc * self.config.tolerance_fraction
        else:
            tolerance = self.config.tolerance_fallback

        iterations = 0
        while iterations < self.config.max_iterations:
            subtotal = round_money(sum(h * r for h, r in zip(hours, rates)))
            delta = target_subtotal - subtotal
            if abs(delta) <= tolerance:
                break

            if delta > 0:
                candidates = [i for i in tweakable if rates[i] > 0]
                if not candidates:
                    break
                pick = max(candidates, key=lambda i: hours[i])
                hours[pick] = round_to_increment(hours[pick] + inc, inc)
            else:
                candidates = [i for i in tweakable if hours[i] > inc]
                if not candidates:
                    break
                pick = max(candidates, key=lambda i: hours[i])
                hours[pick] = round_to_increment(max(0.0, hours[pick] - inc), inc)
                if mandatory[pick]:
                    hours[pick] = max(inc, hours[pick])

            iterations += 1

        if iterations >= self.config.max_iterations:
            warnings.append(PricingWarning(
                type=WarningType.BUDGET_TWEAK_MAX_ITERATIONS,
                detail=f"Stopped after {iterations} adjustments without reaching tolerance {tolerance:,.2f}",
                context={"iterations": iterations, "tolerance": tolerance},
            ))

        fitted = table.model_copy(update={
            "rows": [row.model_copy(update={"hours": h}) for row, h in zip(rows, hours)],
        })
        logger.info(
            f"Fitted '{table.title}' to {subtotal_ex_gst(fitted.rows):,.2f} "
            f"(target {target_subtotal:,.2f}) after {iterations} adjustment(s)"
        )
        return FitResult(pricing_table=fitted, warnings=warnings, target_subtotal_ex_gst=target_subtotal)


def fit_pricing_table_to_target(
    pricing_table: PricingTable | Mapping[str, Any],
    target_after_discount_ex_gst: Any,
    *,
    mandatory_role_names: list[str] | None = None,
    hour_increment: float | None = None,
    max_iterations: int | None = None,
    settings: Settings | None = None,
) -> FitResult:
    """Functional entry point; keyword options override configured defaults."""
    config = fit_config(settings)
    overrides: dict[str, Any] = {}
    if hour_increment is not None:
        overrides["hour_increment"] = hour_increment
    if max_iterations is not None:
        overrides["max_iterations"] = max_iterations
    if overrides:
        config = config.model_copy(update=overrides)

    return BudgetFitter(config).fit(
        pricing_table,
        target_after_discount_ex_gst,
        mandatory_role_names=mandatory_role_names,
    )
