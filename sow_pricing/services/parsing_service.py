"""
Parsing Service — input adapters at the JSON-decoding boundary.

Turns model responses and workspace configuration into the plain structures
the pricing core consumes:
  • raw pricing / SOW payloads from model text (fenced or bare JSON)
  • the `__PRICING_TABLE_JSON__=` marker (and its JSON) in draft SOW responses
  • rate cards stored as JSON strings or lists, with money strings

Does NOT:
  • Call any LLM
  • Validate pricing content (the normalizer does that)
  • Raise on malformed input — failures are logged and return empty values
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Mapping, Optional

from sow_pricing.models.schemas import RateCardEntry
from sow_pricing.rules.pricing_math import to_number
from sow_pricing.rules.rate_card import RATE_FIELDS, ROLE_FIELDS, first_present

logger = logging.getLogger(__name__)

PRICING_MARKER = "__PRICING_TABLE_JSON__="

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_MONEY_STRIP_RE = re.compile(r"[^0-9.\-]")
_DECODER = json.JSONDecoder()


class ParsingService:
    """
    Decode untrusted model output and workspace config.

    Primary interface:
        payload          = ParsingService.parse_json_object(text)
        prose, pricing   = ParsingService.extract_pricing_marker(text)
        entries          = ParsingService.parse_rate_card(workspace_rate_card)
    """

    # ── Model responses ──────────────────────────────────

    @staticmethod
    def parse_json_object(raw: Any) -> Optional[dict[str, Any]]:
        """Return the JSON object carried by `raw`, or None."""
        if isinstance(raw, Mapping):
            return dict(raw)
        if not isinstance(raw, str) or not raw.strip():
            return None

        cleaned = raw.strip()
        cleaned = _FENCE_OPEN_RE.sub("", cleaned)
        cleaned = _FENCE_CLOSE_RE.sub("", cleaned)

        data: Any = None
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError:
            # Fallback: first { ... } block
            match = _OBJECT_RE.search(cleaned)
            if match:
                try:
                    data = json.loads(match.group())
                except json.JSONDecodeError:
                    data = None

        if not isinstance(data, dict):
            logger.warning(f"No JSON object found in model response ({len(raw)} chars)")
            return None
        return data

    @staticmethod
    def extract_pricing_marker(text: Any) -> tuple[str, Optional[dict[str, Any]]]:
        """
        Split a draft SOW response into (prose, pricing payload).

        Each marker is cut from the prose together with the JSON value that
        follows it, however many lines that value spans. A marker whose JSON
        does not decode is cut up to the end of its line. The first value
        that decodes to an object is returned as the payload.
        """
        if not isinstance(text, str):
            return "", None

        parts: list[str] = []
        payload: Optional[dict[str, Any]] = None
        pos = 0
        markers = 0

        while True:
            start = text.find(PRICING_MARKER, pos)
            if start < 0:
                parts.append(text[pos:])
                break
            markers += 1

            # A marker alone on its line takes the whole line with it
            line_start = text.rfind("\n", 0, start) + 1
            whole_line = line_start >= pos and not text[line_start:start].strip()
            parts.append(text[pos:line_start if whole_line else start])

            body = start + len(PRICING_MARKER)
            while body < len(text) and text[body].isspace():
                body += 1

            try:
                data, end = _DECODER.raw_decode(text, body)
            except json.JSONDecodeError:
                data = None
                line_end = text.find("\n", start + len(PRICING_MARKER))
                end = len(text) if line_end < 0 else line_end

            if payload is None and isinstance(data, dict):
                payload = data

            tail = end
            while tail < len(text) and text[tail] in " \t":
                tail += 1
            if tail == len(text):
                end = tail
            elif whole_line and text[tail] == "\n":
                end = tail + 1
            pos = end

        if markers and payload is None:
            logger.warning(f"{markers} pricing marker(s) present but no JSON object could be decoded")
        return "".join(parts).strip(), payload

    # ── Workspace config ─────────────────────────────────

    @staticmethod
    def parse_money(value: Any) -> float:
        """'$1,250.00' → 1250.0; NaN when nothing numeric is left."""
        if isinstance(value, str):
            cleaned = _MONEY_STRIP_RE.sub("", value)
            return to_number(cleaned, math.nan) if cleaned else math.nan
        return to_number(value, math.nan)

    @staticmethod
    def parse_rate_card(value: Any) -> list[RateCardEntry]:
        """Rate card from a JSON string or a list of {role|name|title, rate|hourlyRate|hourly_rate|baseRate}."""
        raw = value
        if isinstance(value, str):
            try:
                raw = json.loads(value) if value.strip() else []
            except json.JSONDecodeError as exc:
                logger.warning(f"Rate card is not valid JSON: {exc}")
                return []

        if not isinstance(raw, list):
            logger.warning(f"Rate card must be a list, got {type(raw).__name__}")
            return []

        entries: list[RateCardEntry] = []
        for item in raw:
            if not isinstance(item, Mapping):
                continue
            role = first_present(item, ROLE_FIELDS)
            rate = ParsingService.parse_money(first_present(item, RATE_FIELDS))
            if not role or not str(role).strip() or math.isnan(rate) or rate < 0:
                logger.debug(f"Skipping rate card entry {item!r}")
                continue
            entries.append(RateCardEntry(role=str(role).strip(), hourly_rate=rate))

        logger.debug(f"Parsed {len(entries)} rate card entries")
        return entries
