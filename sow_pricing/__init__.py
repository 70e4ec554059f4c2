"""
SOW Pricing Engine — rate-card enforcement and budget fitting for
model-generated pricing tables.

    from sow_pricing.rules import normalize_pricing_table, fit_pricing_table_to_target
    from sow_pricing.services import SowService
"""

__version__ = "0.1.0"
