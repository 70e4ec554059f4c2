from enum import Enum

class WarningType(str, Enum):
    RATE_OVERRIDDEN = "rate_overridden"
    UNKNOWN_ROLE = "unknown_role"
    ROLE_FUZZY_MATCH = "role_fuzzy_match"
    MANDATORY_ROLE_INJECTED = "mandatory_role_injected"
    MANDATORY_ROLE_MISSING_FROM_RATE_CARD = "mandatory_role_missing_from_rate_card"
    BUDGET_BELOW_MANDATORY_COST = "budget_below_mandatory_cost"
    DISCOUNT_MAKES_BUDGET_UNSCALABLE = "discount_makes_budget_unscalable"
    CANNOT_SCALE_ZERO_SUBTOTAL = "cannot_scale_zero_subtotal"
    BUDGET_TWEAK_MAX_ITERATIONS = "budget_tweak_max_iterations"

class MatchType(str, Enum):
    EXACT = "exact"
    FUZZY = "fuzzy"

class SowMode(str, Enum):
    TABLE = "table"
    DRAFT = "draft"
    MULTI = "multi"
