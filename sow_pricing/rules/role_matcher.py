"""
Role Matcher — resolve an arbitrary role string against the rate card.

Exact canonical-key hits win outright. Otherwise a conservative fuzzy match
is accepted only when a single rate-card key has the smallest edit distance
and that distance is within `max_distance`. Ties and distant candidates are
treated as unknown roles rather than typos.
"""

from __future__ import annotations

import logging
from typing import Optional

from rapidfuzz.distance import Levenshtein

from sow_pricing.models.enums import MatchType
from sow_pricing.models.schemas import RoleMatch
from sow_pricing.rules.rate_card import RateCardIndex, normalize_role_key

logger = logging.getLogger(__name__)


def match_role(
    input_role: str,
    index: RateCardIndex,
    max_distance: int = 4,
) -> Optional[RoleMatch]:
    key = normalize_role_key(input_role)
    if not key:
        return None

    if key in index:
        return RoleMatch(
            matched_key=key,
            matched_role=index.role_name(key),
            hourly_rate=index.rate(key),
            match_type=MatchType.EXACT,
        )

    best: Optional[str] = None
    best_distance: Optional[int] = None
    tied = False

    for candidate in index.keys():
        distance = Levenshtein.distance(key, candidate)
        if best_distance is None or distance < best_distance:
            best, best_distance, tied = candidate, distance, False
        elif distance == best_distance:
            tied = True

    if best is None or best_distance is None:
        return None

    if tied or best_distance > max_distance:
        logger.debug(
            f"No confident match for '{input_role}' "
            f"(best distance {best_distance}, tied={tied})"
        )
        return None

    return RoleMatch(
        matched_key=best,
        matched_role=index.role_name(best),
        hourly_rate=index.rate(best),
        match_type=MatchType.FUZZY,
        distance=best_distance,
    )
