"""Configuration settings for profitrack."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProfitrackSettings(BaseSettings):
    """Analysis defaults and logging settings.

    Every field can be set with a PROFITRACK_ prefixed environment variable,
    e.g. PROFITRACK_MARGIN_THRESHOLD=15.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROFITRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Margin alerts
    margin_threshold: Decimal = Field(
        default=Decimal("20"), description="Margin percentage below which a job is flagged"
    )
    cost_spike_threshold: Decimal = Field(
        default=Decimal("25"), description="Percent over estimate that counts as a cost spike"
    )
    decline_threshold: Decimal = Field(
        default=Decimal("5"), description="Margin points lost before a declining trend is flagged"
    )
    declining_trend_window: int = Field(
        default=12, ge=2, description="Most recent jobs considered for the declining trend"
    )
    min_trend_observations: int = Field(
        default=6, ge=2, description="Jobs required before the declining trend is evaluated"
    )

    # Reconciliation
    discrepancy_threshold: Decimal = Field(
        default=Decimal("100"), description="Largest cost discrepancy that still trusts external data"
    )
    high_quality_coverage: Decimal = Field(
        default=Decimal("80"), description="Percent of jobs with excellent cost data to trust external data"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING", description="Logging level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log output format"
    )


@lru_cache
def get_settings() -> ProfitrackSettings:
    """Get cached settings instance."""
    return ProfitrackSettings()
