"""
Tests: Budget fitter.

Run with:
    pytest sow_pricing/tests/test_budget_fitter.py -v
"""

import logging

import pytest

from sow_pricing.config import Settings
from sow_pricing.models.enums import WarningType
from sow_pricing.models.schemas import PricingRow, PricingTable
from sow_pricing.rules.budget_fitter import BudgetFitter, coerce_pricing_table, fit_pricing_table_to_target
from sow_pricing.rules.pricing_math import compute_pricing_summary
from sow_pricing.rules.rules_config import fit_config

PM = "Tech - Head Of- Senior Project Management"


def _reference_table(discount=10):
    return PricingTable(
        discount_percent=discount,
        gst_percent=10,
        rows=[
            PricingRow(id="pm", role=PM, hours=4, base_rate=365),
            PricingRow(id="fe", role="Frontend", hours=40, base_rate=200),
        ],
    )


def _hours(table):
    return {r.id: r.hours for r in table.rows}


class TestFitToTarget:
    def test_lands_near_target_and_keeps_mandatory_hours(self):
        result = fit_pricing_table_to_target(_reference_table(), 9000)
        summary = compute_pricing_summary(result.pricing_table)

        assert result.target_subtotal_ex_gst == 10000
        assert 8500 <= summary.discounted_subtotal_ex_gst <= 9500
        assert _hours(result.pricing_table) == {"pm": 4, "fe": 42.5}
        assert result.warnings == []

    def test_percentages_and_row_identity_unchanged(self):
        table = _reference_table()
        fitted = fit_pricing_table_to_target(table, 20000).pricing_table
        assert fitted.discount_percent == table.discount_percent
        assert fitted.gst_percent == table.gst_percent
        assert [r.id for r in fitted.rows] == [r.id for r in table.rows]
        assert [r.base_rate for r in fitted.rows] == [r.base_rate for r in table.rows]

    def test_input_table_not_mutated(self):
        table = _reference_table()
        before = table.to_payload()
        fit_pricing_table_to_target(table, 20000)
        assert table.to_payload() == before

    def test_hours_are_multiples_of_increment(self):
        fitted = fit_pricing_table_to_target(_reference_table(), 12345).pricing_table
        for row in fitted.rows:
            assert (row.hours * 2) == int(row.hours * 2)

    def test_accepts_camelcase_mapping(self):
        result = fit_pricing_table_to_target(_reference_table().to_payload(), 9000)
        assert _hours(result.pricing_table) == {"pm": 4, "fe": 42.5}

    def test_all_mandatory_rows_scale_together(self):
        table = PricingTable(
            discount_percent=0,
            rows=[PricingRow(id="pm", role=PM, hours=10, base_rate=100)],
        )
        result = fit_pricing_table_to_target(table, 500)
        assert _hours(result.pricing_table) == {"pm": 5}


class TestNoOpCases:
    @pytest.mark.parametrize("target", [0, -100, None, "lots", float("nan")])
    def test_unusable_target_returns_table_unchanged(self, target):
        table = _reference_table()
        result = fit_pricing_table_to_target(table, target)
        assert result.pricing_table == table
        assert result.warnings == []
        assert result.target_subtotal_ex_gst is None

    def test_full_discount_is_unscalable(self):
        table = _reference_table(discount=100)
        result = fit_pricing_table_to_target(table, 5000)
        assert [w.type for w in result.warnings] == [WarningType.DISCOUNT_MAKES_BUDGET_UNSCALABLE]
        assert result.pricing_table == table

    def test_zero_subtotal_cannot_scale(self):
        table = PricingTable(
            discount_percent=0,
            rows=[PricingRow(id="x", role="Unknown", hours=10, base_rate=0)],
        )
        result = fit_pricing_table_to_target(table, 5000)
        assert [w.type for w in result.warnings] == [WarningType.CANNOT_SCALE_ZERO_SUBTOTAL]
        assert result.target_subtotal_ex_gst == 5000
        assert _hours(result.pricing_table) == {"x": 10}


class TestHardCases:
    def test_budget_below_mandatory_cost_scales_everything(self):
        table = PricingTable(
            discount_percent=0,
            rows=[
                PricingRow(id="dev", role="Developer", hours=10, base_rate=100),
                PricingRow(id="pm", role=PM, hours=10, base_rate=365),
            ],
        )
        result = fit_pricing_table_to_target(table, 1000)

        assert WarningType.BUDGET_BELOW_MANDATORY_COST in [w.type for w in result.warnings]
        hours = _hours(result.pricing_table)
        assert hours["pm"] >= 0.5
        assert hours == {"dev": 2.5, "pm": 2}

    def test_oscillation_hits_iteration_cap(self):
        table = PricingTable(
            discount_percent=0,
            rows=[
                PricingRow(id="dev", role="Developer", hours=10, base_rate=1000),
                PricingRow(id="cheap", role="Cheap", hours=10, base_rate=1),
            ],
        )
        result = fit_pricing_table_to_target(table, 10250, max_iterations=10)
        assert [w.type for w in result.warnings] == [WarningType.BUDGET_TWEAK_MAX_ITERATIONS]
        assert result.warnings[0].context["iterations"] == 10

    def test_explicit_mandatory_names_override_defaults(self):
        table = PricingTable(
            discount_percent=0,
            rows=[
                PricingRow(id="dev", role="Developer", hours=10, base_rate=100),
                PricingRow(id="pm", role=PM, hours=10, base_rate=365),
            ],
        )
        result = BudgetFitter().fit(table, 1000, mandatory_role_names=[])
        # Nothing is mandatory, so nothing is below mandatory cost
        assert result.warnings == []
        assert _hours(result.pricing_table) == {"dev": 2.5, "pm": 2}


class TestFitConfig:
    def test_non_positive_increment_falls_back_to_half_hour(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = fit_config(Settings(hour_increment=0))
        assert "falls back to 0.5" in caplog.text

        fitted = BudgetFitter(config).fit(_reference_table(), 9000).pricing_table
        assert _hours(fitted) == {"pm": 4, "fe": 42.5}


class TestCoercePricingTable:
    def test_mapping_with_legacy_rate_field(self):
        table = coerce_pricing_table({
            "title": "Legacy",
            "gstPercent": 15,
            "rows": [{"role": "Dev", "hours": 3, "rate": 120}, "junk"],
        })
        assert table.title == "Legacy"
        assert table.gst_percent == 15
        assert len(table.rows) == 1
        assert table.rows[0].base_rate == 120
        assert table.rows[0].id
