"""
Configuration settings for the arbitrage and hedge engine.
Uses pydantic-settings for validation and environment variable loading.
"""

from enum import Enum
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BudgetPolicy(str, Enum):
    """What the scheduler does when provider credits run low."""
    SKIP = "skip"            # Skip budgeted cycles until credits recover
    THROTTLE = "throttle"    # Stretch polling intervals
    IGNORE = "ignore"        # Keep polling; provider enforces the limit


class Settings(BaseSettings):
    """Application settings. Loaded once at startup and passed explicitly."""

    model_config = SettingsConfigDict(
        env_prefix="ARBWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Odds provider (The Odds API v4)
    odds_api_key: str = Field(default="", description="The Odds API key")
    odds_api_base_url: str = "https://api.the-odds-api.com/v4"
    request_timeout_seconds: float = Field(default=15.0, gt=0)
    odds_format: Literal["decimal", "american"] = "decimal"

    # Default scan filters used by the scheduled jobs
    default_sports: list[str] = Field(default_factory=lambda: [
        "americanfootball_nfl",
        "basketball_nba",
        "baseball_mlb",
        "icehockey_nhl",
        "soccer_epl",
    ])
    default_regions: list[str] = Field(default_factory=lambda: ["us", "us2"])
    default_markets: list[str] = Field(default_factory=lambda: ["h2h", "spreads", "totals"])
    default_jurisdictions: list[str] = Field(default_factory=lambda: ["NJ"])

    # Arbitrage detection
    default_bankroll: float = Field(default=1000.0, gt=0)
    min_profit_pct: float = Field(default=0.5, ge=0)
    # Safety ceiling on the summed implied probability. 1.0 means "any
    # arbitrage"; lower values absorb price staleness.
    max_implied_sum: float = Field(default=0.995, gt=0, le=1.0)
    opportunity_validity_seconds: int = Field(default=300, gt=0)
    quote_max_age_seconds: int = Field(default=900, gt=0)
    quote_retention_seconds: int = Field(default=24 * 60 * 60, gt=0)
    scan_result_limit: int = Field(default=10, gt=0)

    # Confidence scoring (recency/count weighting)
    confidence_quote_saturation: int = Field(default=5, gt=0)
    confidence_freshness_seconds: int = Field(default=3600, gt=0)
    confidence_recency_weight: float = Field(default=0.6, ge=0, le=1)

    # Hedging
    hedge_validity_seconds: int = Field(default=120, gt=0)
    hedge_freshness_seconds: int = Field(default=300, gt=0)
    hedge_base_confidence: float = Field(default=0.7, ge=0, lt=1)

    # Credit budget
    budget_policy: BudgetPolicy = BudgetPolicy.SKIP
    budget_reserve_credits: int = Field(default=25, ge=0)
    budget_throttle_factor: float = Field(default=3.0, ge=1)
    initial_credits_remaining: int | None = None

    # Job intervals (seconds)
    prematch_poll_interval: int = 300
    live_poll_interval: int = 60
    arbitrage_index_interval: int = 120
    hedge_monitor_interval: int = 60
    cleanup_interval: int = 6 * 60 * 60
    scheduler_enabled: bool = True

    # Caches
    feature_flag_ttl_seconds: float = 300.0
    eligibility_cache_ttl_seconds: float = 300.0

    log_level: str = "INFO"

    @field_validator("default_jurisdictions")
    @classmethod
    def upper_jurisdictions(cls, value: list[str]) -> list[str]:
        return [code.strip().upper() for code in value if code.strip()]

    @field_validator("hedge_validity_seconds")
    @classmethod
    def hedge_shorter_than_opportunity(cls, value: int, info) -> int:
        window = info.data.get("opportunity_validity_seconds")
        if window is not None and value >= window:
            raise ValueError(
                "hedge_validity_seconds must be shorter than opportunity_validity_seconds"
            )
        return value
