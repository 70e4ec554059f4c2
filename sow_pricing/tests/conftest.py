"""Shared fixtures for the pricing engine tests."""

import pytest

from sow_pricing.config import get_settings

PM = "Tech - Head Of- Senior Project Management"
COORD = "Tech - Delivery - Project Coordination"
AM = "Account Management - (Account Manager)"
INTEGRATIONS = "Tech - Integrations"


@pytest.fixture
def rate_card() -> list[dict]:
    return [
        {"role": PM, "rate": 365},
        {"role": COORD, "rate": 110},
        {"role": AM, "rate": 180},
        {"role": INTEGRATIONS, "rate": 170},
    ]


@pytest.fixture
def workspace_rate_card() -> str:
    """Rate card as stored on a workspace: a JSON string keyed by `name`."""
    return (
        '[{"id": "1", "name": "Tech - Integrations", "rate": 170},'
        ' {"id": "2", "name": "Tech - Head Of- Senior Project Management", "rate": 365},'
        ' {"id": "3", "name": "Tech - Delivery - Project Coordination", "rate": 110},'
        ' {"id": "4", "name": "Account Management - (Account Manager)", "rate": 180}]'
    )


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
