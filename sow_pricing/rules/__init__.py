"""
Rules — the pricing core. Pure, synchronous, no I/O.

Callers import from this package:
    from sow_pricing.rules import normalize_pricing_table, fit_pricing_table_to_target
"""

from .pricing_math import compute_pricing_summary
from .rate_card import RateCardIndex, build_rate_card_index, normalize_role_key
from .role_matcher import match_role
from .normalizer import PricingTableNormalizer, normalize_pricing_table
from .budget_fitter import BudgetFitter, fit_pricing_table_to_target

__all__ = [
    "compute_pricing_summary",
    "RateCardIndex",
    "build_rate_card_index",
    "normalize_role_key",
    "match_role",
    "PricingTableNormalizer",
    "normalize_pricing_table",
    "BudgetFitter",
    "fit_pricing_table_to_target",
]
