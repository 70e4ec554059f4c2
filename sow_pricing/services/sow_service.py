"""
SOW Service — the smart-action pricing paths.

  • run_draft_sow()        → prose + one priced table, from a response that
                             carries a `__PRICING_TABLE_JSON__=` marker line
  • run_multi_scope_sow()  → a multi-option SOW, one priced table per option

Both paths share price_table(): normalize against the rate card with
mandatory roles injected, apply an explicit discount override, then fit to
an optional budget. The LLM call that produced the response is not made here.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional

from sow_pricing.config import Settings, get_settings
from sow_pricing.models.schemas import (
    FitResult,
    PricingTable,
    PricingWarning,
    RateCardEntry,
    ResolvedOption,
    SowResult,
)
from sow_pricing.rules.budget_fitter import BudgetFitter
from sow_pricing.rules.normalizer import PricingTableNormalizer
from sow_pricing.rules.pricing_math import clamp_percent, compute_pricing_summary, round_money, to_number
from sow_pricing.rules.rules_config import fit_config, normalization_config
from sow_pricing.services.parsing_service import ParsingService
from sow_pricing.services.render_service import (
    option_label,
    render_multi_scope_sow_markdown,
    render_pricing_table_markdown,
)
from sow_pricing.utils.logger import log_warnings

logger = logging.getLogger(__name__)


def _positive_or_none(value: Any) -> Optional[float]:
    n = to_number(value, math.nan)
    if math.isnan(n) or n <= 0:
        return None
    return n


class SowService:
    """Price and render smart-action SOW responses."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.normalizer = PricingTableNormalizer(normalization_config(self.settings))
        self.fitter = BudgetFitter(fit_config(self.settings))

    # ── Shared pricing pipeline ──────────────────────────

    @staticmethod
    def rate_card_entries(rate_card: Any) -> list[RateCardEntry]:
        if isinstance(rate_card, list) and all(isinstance(e, RateCardEntry) for e in rate_card):
            return list(rate_card)
        return ParsingService.parse_rate_card(rate_card)

    def price_table(
        self,
        raw_payload: Any,
        rate_card: Any,
        target_after_discount_ex_gst: Any = None,
        discount_percent: Any = None,
        inject_mandatory_roles: bool = True,
    ) -> FitResult:
        """Normalize → discount override → optional budget fit."""
        payload = dict(raw_payload) if isinstance(raw_payload, Mapping) else {}

        override = to_number(discount_percent, math.nan)
        if not math.isnan(override):
            payload["discountPercent"] = clamp_percent(override, 0.0)

        normalized = self.normalizer.normalize(
            payload,
            self.rate_card_entries(rate_card),
            inject_mandatory_roles=inject_mandatory_roles,
            mandatory_role_names=self.settings.mandatory_role_names,
        )
        warnings = list(normalized.warnings)

        target = _positive_or_none(target_after_discount_ex_gst)
        if target is None:
            return FitResult(pricing_table=normalized.pricing_table, warnings=warnings)

        fitted = self.fitter.fit(
            normalized.pricing_table,
            target,
            mandatory_role_names=self.settings.mandatory_role_names,
        )
        return FitResult(
            pricing_table=fitted.pricing_table,
            warnings=warnings + fitted.warnings,
            target_subtotal_ex_gst=fitted.target_subtotal_ex_gst,
        )

    # ── Draft SOW ────────────────────────────────────────

    def run_draft_sow(
        self,
        response_text: str,
        rate_card: Any,
        target_after_discount_ex_gst: Any = None,
        discount_percent: Any = None,
    ) -> SowResult:
        prose, payload = ParsingService.extract_pricing_marker(response_text)
        if payload is None:
            logger.info("Draft SOW response carried no pricing table")
            return SowResult(markdown=prose)

        priced = self.price_table(
            payload,
            rate_card,
            target_after_discount_ex_gst=target_after_discount_ex_gst,
            discount_percent=discount_percent,
        )
        log_warnings(priced.warnings, logger, label="draft_sow")

        table_md = render_pricing_table_markdown(
            priced.pricing_table,
            target_after_discount_ex_gst=_positive_or_none(target_after_discount_ex_gst),
        )
        sections = [s for s in (prose, "## Pricing", table_md) if s]
        return SowResult(
            markdown="\n\n".join(sections).strip() + "\n",
            pricing_table=priced.pricing_table,
            warnings=priced.warnings,
        )

    # ── Multi-scope SOW ──────────────────────────────────

    def run_multi_scope_sow(
        self,
        response: Any,
        rate_card: Any,
        target_after_discount_ex_gst: Any = None,
        discount_percent: Any = None,
    ) -> SowResult:
        payload = ParsingService.parse_json_object(response)
        if payload is None:
            logger.error("Multi-scope SOW response could not be decoded; rendering an empty SOW")
            payload = {}

        raw_options = payload.get("options")
        options = [o for o in raw_options if isinstance(o, Mapping)] if isinstance(raw_options, list) else []

        # Normalize every option first so budget targets can be spread across them
        normalized: list[FitResult] = [
            self.price_table(
                option.get("pricingTable"),
                rate_card,
                discount_percent=discount_percent,
            )
            for option in options
        ]
        targets = self.option_targets(
            [n.pricing_table for n in normalized],
            _positive_or_none(target_after_discount_ex_gst),
        )

        resolved: list[ResolvedOption] = []
        all_warnings: list[PricingWarning] = []
        for option, base, target in zip(options, normalized, targets):
            table: PricingTable = base.pricing_table
            warnings = list(base.warnings)
            if target is not None:
                fitted = self.fitter.fit(table, target, mandatory_role_names=self.settings.mandatory_role_names)
                table = fitted.pricing_table
                warnings.extend(fitted.warnings)

            label = option_label(option)
            log_warnings(warnings, logger, label=f"multi_scope_sow:{label}")
            all_warnings.extend(warnings)
            resolved.append(ResolvedOption(
                label=label,
                option=dict(option),
                pricing_table=table,
                warnings=warnings,
                target_after_discount_ex_gst=target,
            ))

        markdown = render_multi_scope_sow_markdown(payload, resolved)
        logger.info(f"Multi-scope SOW rendered with {len(resolved)} option(s), {len(all_warnings)} warning(s)")
        return SowResult(markdown=markdown, options=resolved, warnings=all_warnings)

    @staticmethod
    def option_targets(tables: list[PricingTable], target: Optional[float]) -> list[Optional[float]]:
        """
        Spread one budget across scope options. The middle option is the
        anchor and receives the target; the others keep their size relative
        to it. Options that cannot be compared fall back to the raw target.
        """
        if target is None or not tables:
            return [None] * len(tables)

        anchor = compute_pricing_summary(tables[len(tables) // 2]).discounted_subtotal_ex_gst
        out: list[Optional[float]] = []
        for table in tables:
            own = compute_pricing_summary(table).discounted_subtotal_ex_gst
            if anchor > 0 and own > 0:
                out.append(round_money(target * own / anchor))
            else:
                out.append(target)
        return out


def run_draft_sow(
    response_text: str,
    rate_card: Any,
    target_after_discount_ex_gst: Any = None,
    discount_percent: Any = None,
    settings: Settings | None = None,
) -> SowResult:
    return SowService(settings).run_draft_sow(
        response_text,
        rate_card,
        target_after_discount_ex_gst=target_after_discount_ex_gst,
        discount_percent=discount_percent,
    )


def run_multi_scope_sow(
    response: Any,
    rate_card: Any,
    target_after_discount_ex_gst: Any = None,
    discount_percent: Any = None,
    settings: Settings | None = None,
) -> SowResult:
    return SowService(settings).run_multi_scope_sow(
        response,
        rate_card,
        target_after_discount_ex_gst=target_after_discount_ex_gst,
        discount_percent=discount_percent,
    )
