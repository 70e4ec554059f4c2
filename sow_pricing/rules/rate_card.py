"""
Rate Card Index — canonical role key → (rate-card role name, hourly rate).

The rate card is trusted configuration but carries free-form strings, so
ingestion is forgiving: malformed entries are skipped, never raised.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from sow_pricing.models.schemas import RateCardEntry
from sow_pricing.rules.pricing_math import to_number

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_DISALLOWED_RE = re.compile(r"[^a-z0-9\s\-().]")

ROLE_FIELDS = ("role", "name", "title")
RATE_FIELDS = ("rate", "hourlyRate", "hourly_rate", "baseRate")


def normalize_role_key(role_name: Any) -> str:
    """Lowercase, collapse whitespace, keep only [a-z0-9 -().], trim."""
    text = str(role_name or "").lower()
    text = _WHITESPACE_RE.sub(" ", text)
    text = _DISALLOWED_RE.sub("", text)
    return text.strip()


def first_present(entry: Mapping[str, Any], names: Iterable[str]) -> Any:
    for name in names:
        value = entry.get(name)
        if value is not None:
            return value
    return None


@dataclass
class RateCardIndex:
    """Lookup built fresh for every normalization call."""

    rates: dict[str, float] = field(default_factory=dict)
    names: dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.rates)

    def __contains__(self, key: str) -> bool:
        return key in self.rates

    def keys(self) -> list[str]:
        return list(self.rates.keys())

    def role_name(self, key: str) -> str:
        return self.names[key]

    def rate(self, key: str) -> float:
        return self.rates[key]

    def add(self, role: str, rate: float) -> None:
        key = normalize_role_key(role)
        if not key:
            return
        if key in self.rates and self.names[key] != role:
            logger.debug(f"Rate card key collision on '{key}': '{self.names[key]}' replaced by '{role}'")
        self.rates[key] = rate
        self.names[key] = role


def build_rate_card_index(entries: Iterable[RateCardEntry | Mapping[str, Any]] | None) -> RateCardIndex:
    """Index rate card entries by canonical role key (last writer wins)."""
    index = RateCardIndex()
    skipped = 0

    for entry in entries or []:
        if isinstance(entry, RateCardEntry):
            index.add(entry.role, entry.hourly_rate)
            continue
        if not isinstance(entry, Mapping):
            skipped += 1
            continue

        role = first_present(entry, ROLE_FIELDS)
        rate = to_number(first_present(entry, RATE_FIELDS), math.nan)
        if not role or not normalize_role_key(role) or math.isnan(rate):
            skipped += 1
            continue

        index.add(str(role), rate)

    if skipped:
        logger.debug(f"Skipped {skipped} malformed rate card entr{'y' if skipped == 1 else 'ies'}")
    return index
