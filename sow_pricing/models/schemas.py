"""
Reusable data schemas for the pricing engine.
Each schema represents a clearly-bounded data object produced by one stage:
rate card ingestion, normalization, budget fitting, or SOW rendering.

Pricing rows and tables are frozen value types. Every transformation returns
new instances; row ids survive every stage.
"""

from __future__ import annotations

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field

from .enums import MatchType, WarningType


# ── Rate card ────────────────────────────────────────────


class RateCardEntry(BaseModel):
    """One authoritative role → hourly rate pair from workspace config."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    role: str
    hourly_rate: float = Field(ge=0, alias="hourlyRate")


class RoleMatch(BaseModel):
    """Result of resolving a free-form role against the rate card."""
    model_config = ConfigDict(frozen=True)

    matched_key: str
    matched_role: str
    hourly_rate: float
    match_type: MatchType = MatchType.EXACT
    distance: int = 0


# ── Pricing table ────────────────────────────────────────


class PricingRow(BaseModel):
    """A single line item: role × hours × base rate."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    role: str = ""
    description: str = ""
    hours: float = Field(default=0.0, ge=0)
    base_rate: float = Field(default=0.0, ge=0, alias="baseRate")


class PricingTable(BaseModel):
    """Normalized pricing table. Currency is forced by the normalizer."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = "Project Pricing"
    currency: str = "AUD"
    discount_percent: float = Field(default=0.0, ge=0, le=100, alias="discountPercent")
    gst_percent: float = Field(default=10.0, ge=0, le=100, alias="gstPercent")
    rows: list[PricingRow] = []

    def to_payload(self) -> dict[str, Any]:
        """camelCase dict matching the JSON contract spoken by callers."""
        return self.model_dump(by_alias=True)


class PricingSummary(BaseModel):
    """Derived totals. Always recomputed from a table, never stored."""
    model_config = ConfigDict(frozen=True)

    currency: str = "AUD"
    subtotal_ex_gst: float = 0.0
    discount_percent: float = 0.0
    discount_amount: float = 0.0
    discounted_subtotal_ex_gst: float = 0.0
    gst_percent: float = 0.0
    gst_amount: float = 0.0
    total_inc_gst: float = 0.0


# ── Diagnostics ──────────────────────────────────────────


class PricingWarning(BaseModel):
    """Side-channel diagnostic. Returned to callers, never raised."""
    model_config = ConfigDict(frozen=True)

    type: WarningType
    detail: str = ""
    context: dict[str, Any] = {}

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, **self.context}


# ── Stage results ────────────────────────────────────────


class NormalizationResult(BaseModel):
    pricing_table: PricingTable
    warnings: list[PricingWarning] = []


class FitResult(BaseModel):
    pricing_table: PricingTable
    warnings: list[PricingWarning] = []
    target_subtotal_ex_gst: Optional[float] = None


class ResolvedOption(BaseModel):
    """One scope option of a multi-scope SOW after pricing resolution."""
    label: str = "Option"
    option: dict[str, Any] = {}
    pricing_table: PricingTable
    warnings: list[PricingWarning] = []
    target_after_discount_ex_gst: Optional[float] = None


class SowResult(BaseModel):
    """Rendered smart-action output plus the tables behind it."""
    markdown: str = ""
    pricing_table: Optional[PricingTable] = None
    options: list[ResolvedOption] = []
    warnings: list[PricingWarning] = []
