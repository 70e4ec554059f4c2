"""
Pricing Table Normalizer — turns an untrusted, model-produced pricing payload
into a table priced strictly from the rate card.

Trust boundary: model-supplied rates are advisory only. A matched row always
carries the rate-card rate; an unmatched row carries a zero rate so it reads
as "needs manual pricing". Every compromise is reported as a PricingWarning.
Malformed content never raises.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Mapping, Optional

from sow_pricing.config import Settings
from sow_pricing.models.enums import MatchType, WarningType
from sow_pricing.models.schemas import (
    NormalizationResult,
    PricingRow,
    PricingTable,
    PricingWarning,
    RateCardEntry,
)
from sow_pricing.rules.pricing_math import clamp_percent, round_to_increment, to_number
from sow_pricing.rules.rate_card import RateCardIndex, build_rate_card_index, normalize_role_key
from sow_pricing.rules.role_matcher import match_role
from sow_pricing.rules.rules_config import NormalizationConfig, normalization_config
from sow_pricing.utils.hashing import row_id

logger = logging.getLogger(__name__)

_INPUT_RATE_FIELDS = ("baseRate", "rate", "hourlyRate")


def input_rate(row: Mapping[str, Any]) -> Optional[float]:
    """The model-supplied rate: first resolvable of baseRate / rate / hourlyRate."""
    for name in _INPUT_RATE_FIELDS:
        value = row.get(name)
        if value is None:
            continue
        n = to_number(value, math.nan)
        if not math.isnan(n):
            return n
    return None


class PricingTableNormalizer:
    """Rate-card enforcement, ordering and mandatory-role injection."""

    def __init__(self, config: NormalizationConfig | None = None):
        self.config = config or normalization_config()

    # ── Public entry point ───────────────────────────────

    def normalize(
        self,
        raw_payload: Any,
        rate_card_entries: Iterable[RateCardEntry | Mapping[str, Any]] | None = None,
        inject_mandatory_roles: bool = False,
        mandatory_role_names: list[str] | None = None,
    ) -> NormalizationResult:
        warnings: list[PricingWarning] = []
        payload: Mapping[str, Any] = raw_payload if isinstance(raw_payload, Mapping) else {}
        index = build_rate_card_index(rate_card_entries)

        if not len(index):
            logger.info("Empty rate card — every row will be priced at 0")

        title = payload.get("title")
        title = title if isinstance(title, str) else self.config.default_title

        rows = self._normalize_rows(payload.get("rows"), index, title, warnings)

        if inject_mandatory_roles:
            names = (
                mandatory_role_names
                if mandatory_role_names is not None
                else self.config.mandatory_role_names
            )
            rows = self._ensure_mandatory_roles(rows, index, names, warnings)

        table = PricingTable(
            title=title,
            currency=self.config.currency,
            discount_percent=clamp_percent(payload.get("discountPercent"), 0.0),
            gst_percent=clamp_percent(
                payload.get("gstPercent"),
                clamp_percent(self.config.default_gst_percent, 10.0),
            ),
            rows=rows,
        )

        logger.debug(
            f"Normalized '{table.title}': {len(table.rows)} rows, "
            f"discount={table.discount_percent}% gst={table.gst_percent}%, "
            f"{len(warnings)} warning(s)"
        )
        return NormalizationResult(pricing_table=table, warnings=warnings)

    # ── Ordering ─────────────────────────────────────────

    def role_rank(self, role_name: str) -> int:
        key = normalize_role_key(role_name)
        for rule in self.config.role_ranks:
            if all(fragment in key for fragment in rule.fragments):
                return rule.rank
        return self.config.default_rank

    def sort_rows(self, rows: list[PricingRow]) -> list[PricingRow]:
        # sorted() is stable, so equal ranks keep their input order
        return sorted(rows, key=lambda r: self.role_rank(r.role))

    # ── Row re-pricing ───────────────────────────────────

    def _normalize_rows(
        self,
        raw_rows: Any,
        index: RateCardIndex,
        title: str,
        warnings: list[PricingWarning],
    ) -> list[PricingRow]:
        rows: list[PricingRow] = []

        for idx, raw in enumerate(raw_rows if isinstance(raw_rows, list) else []):
            safe = raw if isinstance(raw, Mapping) else {}

            role = str(safe.get("role") or "").strip()
            hours = max(0.0, to_number(safe.get("hours"), 0.0))
            supplied_rate = input_rate(safe)

            match = match_role(role, index, self.config.fuzzy_max_distance)
            if match:
                if match.match_type == MatchType.FUZZY:
                    warnings.append(PricingWarning(
                        type=WarningType.ROLE_FUZZY_MATCH,
                        detail=f"'{role}' resolved to '{match.matched_role}' (distance {match.distance})",
                        context={
                            "inputRole": role,
                            "matchedRole": match.matched_role,
                            "distance": match.distance,
                        },
                    ))
                if supplied_rate is not None and supplied_rate != match.hourly_rate:
                    warnings.append(PricingWarning(
                        type=WarningType.RATE_OVERRIDDEN,
                        detail=(
                            f"'{match.matched_role}' rate {supplied_rate:g} replaced "
                            f"by rate card {match.hourly_rate:g}"
                        ),
                        context={
                            "role": match.matched_role,
                            "inputRate": supplied_rate,
                            "rateCardRate": match.hourly_rate,
                        },
                    ))
            elif role:
                warnings.append(PricingWarning(
                    type=WarningType.UNKNOWN_ROLE,
                    detail=f"'{role}' is not on the rate card; priced at 0",
                    context={"role": role},
                ))

            raw_id = safe.get("id")
            rows.append(PricingRow(
                id=str(raw_id) if raw_id not in (None, "") else row_id(title, idx, role),
                role=match.matched_role if match else role,
                description=str(safe.get("description") or ""),
                hours=hours,
                base_rate=max(0.0, match.hourly_rate) if match else 0.0,
            ))

        return self.sort_rows(rows)

    # ── Mandatory roles ──────────────────────────────────

    def estimate_mandatory_hours(self, role: str, existing_hours_total: float) -> float:
        key = normalize_role_key(role)
        for rule in self.config.mandatory_hours:
            if rule.fragment not in key:
                continue
            if existing_hours_total > 0:
                share = round_to_increment(
                    existing_hours_total * rule.share_of_existing,
                    self.config.hour_increment,
                )
                return max(rule.min_hours, share)
            return rule.default_hours
        return self.config.fallback_mandatory_hours

    def _ensure_mandatory_roles(
        self,
        rows: list[PricingRow],
        index: RateCardIndex,
        mandatory_role_names: list[str],
        warnings: list[PricingWarning],
    ) -> list[PricingRow]:
        existing_keys = {normalize_role_key(r.role) for r in rows}
        existing_hours_total = sum(r.hours for r in rows)
        injected: list[PricingRow] = []

        for required in mandatory_role_names:
            required_key = normalize_role_key(required)
            if not required_key:
                continue

            match = match_role(required, index, self.config.fuzzy_max_distance)
            if required_key in existing_keys or (match and match.matched_key in existing_keys):
                continue

            if match is None:
                warnings.append(PricingWarning(
                    type=WarningType.MANDATORY_ROLE_MISSING_FROM_RATE_CARD,
                    detail=f"Mandatory role '{required}' is not on the rate card; not injected",
                    context={"role": required},
                ))
                continue

            hours = self.estimate_mandatory_hours(match.matched_role, existing_hours_total)
            injected.append(PricingRow(
                id=f"mandatory-{match.matched_key}",
                role=match.matched_role,
                description="",
                hours=hours,
                base_rate=max(0.0, match.hourly_rate),
            ))
            existing_keys.add(match.matched_key)
            warnings.append(PricingWarning(
                type=WarningType.MANDATORY_ROLE_INJECTED,
                detail=f"Injected mandatory role '{match.matched_role}' with {hours:g}h",
                context={"role": match.matched_role, "hours": hours},
            ))

        if injected:
            logger.info(f"Injected {len(injected)} mandatory role(s)")
        return self.sort_rows(rows + injected)


def normalize_pricing_table(
    raw_payload: Any,
    rate_card_entries: Iterable[RateCardEntry | Mapping[str, Any]] | None = None,
    *,
    currency: str | None = None,
    default_gst_percent: float | None = None,
    inject_mandatory_roles: bool = False,
    mandatory_role_names: list[str] | None = None,
    settings: Settings | None = None,
) -> NormalizationResult:
    """Functional entry point; keyword options override configured defaults."""
    config = normalization_config(settings)
    overrides: dict[str, Any] = {}
    if currency is not None:
        overrides["currency"] = currency
    if default_gst_percent is not None:
        overrides["default_gst_percent"] = default_gst_percent
    if overrides:
        config = config.model_copy(update=overrides)

    return PricingTableNormalizer(config).normalize(
        raw_payload,
        rate_card_entries,
        inject_mandatory_roles=inject_mandatory_roles,
        mandatory_role_names=mandatory_role_names,
    )
