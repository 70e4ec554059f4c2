"""
Rules Config — tunable constants for normalization and budget fitting.

Values come from Settings where an environment override makes sense; the
role-specific heuristics are plain model defaults.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from sow_pricing.config import Settings, get_settings

logger = logging.getLogger(__name__)


# ── Config models ────────────────────────────────────────


class RoleRankRule(BaseModel):
    """Rows whose canonical key contains every fragment get `rank`."""
    fragments: list[str]
    rank: int


class MandatoryHoursRule(BaseModel):
    """Estimated hours for an injected mandatory role."""
    fragment: str
    share_of_existing: float  # fraction of hours already in the table
    min_hours: float
    default_hours: float  # used when the table has no hours yet


class NormalizationConfig(BaseModel):
    """Normalizer configuration."""
    currency: str = "AUD"
    default_title: str = "Project Pricing"
    default_gst_percent: float = 10.0
    fuzzy_max_distance: int = 4
    mandatory_role_names: list[str] = []
    hour_increment: float = 0.5
    default_rank: int = 2
    role_ranks: list[RoleRankRule] = [
        RoleRankRule(fragments=["tech", "head", "senior project management"], rank=0),
        RoleRankRule(fragments=["project coordination"], rank=1),
        RoleRankRule(fragments=["account management"], rank=999),
    ]
    mandatory_hours: list[MandatoryHoursRule] = [
        MandatoryHoursRule(fragment="senior project management", share_of_existing=0.10, min_hours=2, default_hours=4),
        MandatoryHoursRule(fragment="project coordination", share_of_existing=0.05, min_hours=1, default_hours=2),
        MandatoryHoursRule(fragment="account management", share_of_existing=0.05, min_hours=1, default_hours=2),
    ]
    fallback_mandatory_hours: float = 1.0


class FitConfig(BaseModel):
    """Budget fitter configuration."""
    hour_increment: float = 0.5
    max_iterations: int = 200
    tolerance_fraction: float = 0.5
    tolerance_fallback: float = 50.0
    mandatory_role_names: list[str] = []


# ── Builders ─────────────────────────────────────────────


def normalization_config(settings: Settings | None = None) -> NormalizationConfig:
    s = settings or get_settings()
    return NormalizationConfig(
        currency=s.currency,
        default_gst_percent=s.default_gst_percent,
        fuzzy_max_distance=s.fuzzy_max_distance,
        mandatory_role_names=list(s.mandatory_role_names),
        hour_increment=s.hour_increment,
    )


def fit_config(settings: Settings | None = None) -> FitConfig:
    s = settings or get_settings()
    if s.hour_increment <= 0:
        logger.warning(f"Non-positive hour increment {s.hour_increment}; the fitter falls back to 0.5")
    return FitConfig(
        hour_increment=s.hour_increment,
        max_iterations=s.max_fit_iterations,
        tolerance_fraction=s.fit_tolerance_fraction,
        tolerance_fallback=s.fit_tolerance_fallback,
        mandatory_role_names=list(s.mandatory_role_names),
    )
