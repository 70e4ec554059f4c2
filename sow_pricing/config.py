"""
Application configuration using Pydantic Settings.
All environment-specific values are centralized here.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


DEFAULT_MANDATORY_ROLE_NAMES: list[str] = [
    "Tech - Head Of- Senior Project Management",
    "Tech - Delivery - Project Coordination",
    "Account Management - (Account Manager)",
]


class Settings(BaseSettings):
    """Pricing engine settings loaded from environment variables."""

    # ── Pricing table ────────────────────────────────────
    currency: str = "AUD"
    default_gst_percent: float = 10.0
    mandatory_role_names: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MANDATORY_ROLE_NAMES)
    )

    # ── Role matching ────────────────────────────────────
    fuzzy_max_distance: int = 4

    # ── Budget fitting ───────────────────────────────────
    hour_increment: float = 0.5
    max_fit_iterations: int = 200
    fit_tolerance_fraction: float = 0.5  # of (min adjustable rate × increment)
    fit_tolerance_fallback: float = 50.0  # currency units, no usable rate

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="SOW_PRICING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
