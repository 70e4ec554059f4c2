"""
Render Service — markdown for pricing tables and multi-scope SOWs.

Display money is AUD with no decimals; the numbers inside the table keep
cent precision. Model JSON never reaches the rendered text.
"""

from __future__ import annotations

import logging
import math
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Optional

from sow_pricing.models.schemas import PricingRow, PricingTable, ResolvedOption
from sow_pricing.rules.pricing_math import compute_pricing_summary, round_money, to_number

logger = logging.getLogger(__name__)

TABLE_HEADER = "| Role | Description | Hours | Rate (AUD ex GST) | Line total (AUD ex GST) |"
TABLE_ALIGN = "| --- | --- | ---: | ---: | ---: |"
PRICING_FOOTNOTE = "_All totals are in AUD. Rates and subtotals are ex GST; totals inc GST._"

_BULLET_PREFIX_RE = re.compile(r"^\s*[-*]\s+")


def format_number(value: Any) -> str:
    """Plain number: integers without a decimal point, otherwise shortest repr."""
    n = to_number(value, 0.0)
    if n == int(n):
        return str(int(n))
    return repr(n)


def format_aud(amount: Any) -> str:
    """$9,460 — whole dollars, half-up, thousands separators."""
    n = Decimal(repr(to_number(amount, 0.0))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if n < 0 else ""
    return f"{sign}${abs(int(n)):,}"


def _escape_cell(value: Any) -> str:
    return str(value or "").replace("|", "\\|")


def render_pricing_table_markdown(
    pricing_table: PricingTable | Mapping[str, Any] | None,
    target_after_discount_ex_gst: Optional[float] = None,
) -> str:
    summary = compute_pricing_summary(pricing_table)
    if isinstance(pricing_table, PricingTable):
        rows: list[Any] = list(pricing_table.rows)
    elif isinstance(pricing_table, Mapping) and isinstance(pricing_table.get("rows"), list):
        rows = [r for r in pricing_table["rows"] if isinstance(r, Mapping)]
    else:
        rows = []

    lines: list[str] = [
        f"Discount: {format_number(summary.discount_percent)}%",
        f"GST: {format_number(summary.gst_percent)}%",
        "",
        TABLE_HEADER,
        TABLE_ALIGN,
    ]

    for row in rows:
        if isinstance(row, PricingRow):
            role, description, hours, rate = row.role, row.description, row.hours, row.base_rate
        else:
            role = row.get("role")
            description = row.get("description")
            hours = row.get("hours")
            rate = row.get("baseRate", row.get("rate"))
        hours = round_money(hours)
        rate = round_money(rate)
        line_total = round_money(hours * rate)
        lines.append(
            f"| {_escape_cell(role)} | {_escape_cell(description)} | "
            f"{format_number(hours)} | {format_number(rate)} | {format_number(line_total)} |"
        )

    lines.append("")
    lines.append("**Totals (AUD):**")
    lines.append(f"- Subtotal (ex GST): {format_aud(summary.subtotal_ex_gst)}")
    if summary.discount_percent > 0:
        lines.append(
            f"- Discount ({format_number(summary.discount_percent)}%): "
            f"-{format_aud(summary.discount_amount)}"
        )
    after_discount = f"- Subtotal after discount (ex GST): {format_aud(summary.discounted_subtotal_ex_gst)}"
    target = to_number(target_after_discount_ex_gst, math.nan)
    if not math.isnan(target):
        after_discount += f" (Target: {format_aud(target)})"
    lines.append(after_discount)
    lines.append(f"- GST ({format_number(summary.gst_percent)}%): {format_aud(summary.gst_amount)}")
    lines.append(f"- Total (inc GST): {format_aud(summary.total_inc_gst)}")

    return "\n".join(lines)


# ── SOW prose helpers ────────────────────────────────────


def as_list(value: Any) -> list[str]:
    """List items or newline-separated bullets → clean, non-empty strings."""
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    if isinstance(value, str):
        items = [_BULLET_PREFIX_RE.sub("", line).strip() for line in value.split("\n")]
        return [i for i in items if i]
    return []


def render_bullets(items: Any) -> str:
    entries = as_list(items)
    if not entries:
        return "- None"
    return "\n".join(f"- {e}" for e in entries)


def _paragraph(text: Any) -> str:
    return text.strip() if isinstance(text, str) else ""


def option_label(option: Mapping[str, Any]) -> str:
    label = option.get("label") or option.get("name") or option.get("title") or "Option"
    return str(label).strip() or "Option"


def render_option_markdown(resolved: ResolvedOption) -> str:
    option = resolved.option
    parts: list[str] = [f"### {resolved.label}"]

    overview = _paragraph(option.get("overview"))
    if overview:
        parts.append("#### Overview")
        parts.append(overview)

    objectives = as_list(option.get("objectives"))
    if objectives:
        parts.append("#### Objectives")
        parts.append(render_bullets(objectives))

    scope_in = option.get("scopeIn") if option.get("scopeIn") is not None else option.get("inScope")
    scope_out = option.get("scopeOut") if option.get("scopeOut") is not None else option.get("outOfScope")
    parts.append("#### Scope")
    parts.append("**In Scope**")
    parts.append(render_bullets(scope_in))
    parts.append("")
    parts.append("**Out of Scope**")
    parts.append(render_bullets(scope_out))

    parts.append("#### Deliverables")
    parts.append(render_bullets(option.get("deliverables")))

    parts.append("#### Timeline")
    parts.append(render_bullets(option.get("timeline")))

    parts.append("#### Pricing")
    parts.append(render_pricing_table_markdown(
        resolved.pricing_table,
        target_after_discount_ex_gst=resolved.target_after_discount_ex_gst,
    ))
    parts.append("")
    parts.append(PRICING_FOOTNOTE)

    parts.append("#### Assumptions")
    parts.append(render_bullets(option.get("assumptions")))

    parts.append("#### Risks")
    parts.append(render_bullets(option.get("risks")))

    parts.append("#### Next Steps")
    parts.append(render_bullets(option.get("nextSteps")))

    return "\n\n".join(parts)


def render_multi_scope_sow_markdown(
    payload: Mapping[str, Any],
    options: Iterable[ResolvedOption],
) -> str:
    title = str(payload.get("title") or "Statement of Work").strip()
    lines: list[str] = [f"## {title}"]

    intro = _paragraph(payload.get("intro") or payload.get("summary"))
    if intro:
        lines.append("")
        lines.append(intro)

    client = _paragraph(payload.get("client"))
    project = _paragraph(payload.get("project"))
    if client or project:
        lines.append("")
        lines.append("**Client / Project**")
        if client:
            lines.append(f"- Client: {client}")
        if project:
            lines.append(f"- Project: {project}")

    count = 0
    for resolved in options:
        lines.append("")
        lines.append(render_option_markdown(resolved))
        count += 1

    logger.debug(f"Rendered SOW '{title}' with {count} option(s)")
    return "\n".join(lines).strip() + "\n"
