"""
Tests: Draft and multi-scope SOW pricing paths.

Run with:
    pytest sow_pricing/tests/test_sow_service.py -v
"""

import json

from sow_pricing.models.schemas import RateCardEntry
from sow_pricing.rules.pricing_math import compute_pricing_summary
from sow_pricing.services.parsing_service import PRICING_MARKER
from sow_pricing.services.render_service import TABLE_HEADER
from sow_pricing.services.sow_service import SowService, run_draft_sow, run_multi_scope_sow

PM = "Tech - Head Of- Senior Project Management"
COORD = "Tech - Delivery - Project Coordination"
AM = "Account Management - (Account Manager)"
INTEGRATIONS = "Tech - Integrations"


def _draft_response(rows):
    payload = json.dumps({"title": "Integration Build", "discountPercent": 10, "rows": rows})
    return (
        "## Statement of Work\n\n"
        "We will connect the CRM to the billing platform.\n"
        f"{PRICING_MARKER}{payload}\n"
        "Thank you."
    )


def _multi_response():
    def option(label, hours):
        return {
            "label": label,
            "overview": f"{label} delivery.",
            "scopeIn": ["CRM sync"],
            "deliverables": ["Integration"],
            "pricingTable": {
                "currency": "USD",
                "rows": [{"role": INTEGRATIONS, "description": "Build", "hours": hours, "rate": 999}],
            },
        }

    return "```json\n" + json.dumps({
        "title": "Integration SOW",
        "intro": "Three ways to deliver.",
        "options": [option("Lean", 10), option("Standard", 20), option("Premium", 40)],
    }) + "\n```"


class TestDraftSow:
    def test_marker_table_is_priced_and_rendered(self, workspace_rate_card):
        result = run_draft_sow(
            _draft_response([{"role": INTEGRATIONS, "hours": 20, "rate": 999}]),
            workspace_rate_card,
        )
        markdown = result.markdown

        assert PRICING_MARKER not in markdown
        assert markdown.startswith("## Statement of Work")
        assert "Thank you." in markdown
        assert "## Pricing" in markdown
        assert "\n" + TABLE_HEADER + "\n" in markdown
        assert "| Tech - Integrations |  | 20 | 170 | 3400 |" in markdown
        assert "999" not in markdown

        roles = {r.role: r for r in result.pricing_table.rows}
        for name in (PM, COORD, AM):
            assert name in markdown
            assert roles[name].hours > 0

    def test_target_and_discount_override(self, workspace_rate_card):
        result = run_draft_sow(
            _draft_response([{"role": INTEGRATIONS, "hours": 20}]),
            workspace_rate_card,
            target_after_discount_ex_gst=5000,
            discount_percent=7.5,
        )
        assert "Discount: 7.5%" in result.markdown
        assert "(Target: $5,000)" in result.markdown
        summary = compute_pricing_summary(result.pricing_table)
        assert summary.discount_percent == 7.5
        assert abs(summary.discounted_subtotal_ex_gst - 5000) < 500

    def test_pretty_printed_marker_json_never_reaches_markdown(self, workspace_rate_card):
        body = json.dumps(
            {"title": "P", "rows": [{"role": INTEGRATIONS, "hours": 20, "baseRate": 999}]},
            indent=2,
        )
        result = run_draft_sow(f"## SOW\n\nProse.\n{PRICING_MARKER}{body}\nThanks.", workspace_rate_card)

        assert result.pricing_table is not None
        assert result.markdown.startswith("## SOW\n\nProse.\nThanks.\n\n## Pricing")
        assert '"baseRate"' not in result.markdown
        assert "999" not in result.markdown
        assert "| Tech - Integrations |  | 20 | 170 | 3400 |" in result.markdown

    def test_no_marker_returns_prose(self, workspace_rate_card):
        result = run_draft_sow("Just words.\nNo pricing here.", workspace_rate_card)
        assert result.markdown == "Just words.\nNo pricing here."
        assert result.pricing_table is None

    def test_undecodable_marker_is_stripped(self, workspace_rate_card):
        result = run_draft_sow(f"Intro\n{PRICING_MARKER}{{broken\nOutro", workspace_rate_card)
        assert result.markdown == "Intro\nOutro"
        assert result.pricing_table is None


class TestMultiScopeSow:
    def test_every_option_priced_from_rate_card(self, workspace_rate_card):
        result = run_multi_scope_sow(
            _multi_response(),
            workspace_rate_card,
            target_after_discount_ex_gst=22000,
            discount_percent=5,
        )
        markdown = result.markdown

        assert markdown.count("\n" + TABLE_HEADER + "\n") == 3
        assert "| Tech - Integrations " in markdown
        assert "| 170 " in markdown
        assert "999" not in markdown
        assert PRICING_MARKER not in markdown
        for name in (PM, COORD, AM):
            assert name in markdown
        for label in ("### Lean", "### Standard", "### Premium"):
            assert label in markdown

        assert [o.label for o in result.options] == ["Lean", "Standard", "Premium"]
        assert all(o.pricing_table.currency == "AUD" for o in result.options)
        assert all(o.pricing_table.discount_percent == 5 for o in result.options)

    def test_budget_spread_around_middle_option(self, workspace_rate_card):
        result = run_multi_scope_sow(
            _multi_response(),
            workspace_rate_card,
            target_after_discount_ex_gst=22000,
            discount_percent=5,
        )
        lean, standard, premium = (o.target_after_discount_ex_gst for o in result.options)
        assert standard == 22000
        assert lean < standard < premium

    def test_no_target_leaves_hours(self, workspace_rate_card):
        result = run_multi_scope_sow(_multi_response(), workspace_rate_card)
        lean = result.options[0]
        assert lean.target_after_discount_ex_gst is None
        hours = {r.role: r.hours for r in lean.pricing_table.rows}
        assert hours[INTEGRATIONS] == 10

    def test_undecodable_response(self, workspace_rate_card):
        result = run_multi_scope_sow("not json at all", workspace_rate_card)
        assert result.options == []
        assert result.markdown == "## Statement of Work\n"


class TestPriceTable:
    def test_accepts_rate_card_entries(self):
        service = SowService()
        result = service.price_table(
            {"rows": [{"role": INTEGRATIONS, "hours": 2}]},
            [RateCardEntry(role=INTEGRATIONS, hourly_rate=170)],
            inject_mandatory_roles=False,
        )
        assert result.pricing_table.rows[0].base_rate == 170
        assert result.target_subtotal_ex_gst is None

    def test_discount_override_is_clamped(self, rate_card):
        result = SowService().price_table({"discountPercent": 5, "rows": []}, rate_card, discount_percent=140)
        assert result.pricing_table.discount_percent == 100

    def test_option_targets_fall_back_for_empty_options(self, rate_card):
        service = SowService()
        empty = service.price_table({"rows": []}, rate_card, inject_mandatory_roles=False).pricing_table
        full = service.price_table(
            {"rows": [{"role": INTEGRATIONS, "hours": 10}]}, rate_card, inject_mandatory_roles=False
        ).pricing_table
        assert SowService.option_targets([empty, full, full], 1000) == [1000, 1000, 1000]
        assert SowService.option_targets([full], None) == [None]
