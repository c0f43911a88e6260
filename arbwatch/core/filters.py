"""Scan filter parameters shared by the estimate and scan paths."""

import re

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import InvalidInput

ALL_SPORTS = "all"
VALID_REGIONS = frozenset({"us", "us2", "uk", "eu", "au"})
VALID_MARKETS = frozenset({"h2h", "spreads", "totals"})
_SPORT_KEY = re.compile(r"^[a-z0-9_]+$")


class ScanFilters(BaseModel):
    """
    Filters for an estimate or a scan.

    Jurisdictions are kept as given; emptiness is checked by the
    eligibility layer so it surfaces as InvalidInput before any fetch.
    """
    jurisdictions: list[str] = Field(default_factory=list)
    sports: list[str] = Field(default_factory=lambda: [ALL_SPORTS])
    regions: list[str] = Field(default_factory=lambda: ["us", "us2"])
    markets: list[str] = Field(default_factory=lambda: ["h2h", "spreads", "totals"])
    min_profit_pct: float = Field(default=0.5, ge=0)
    live_only: bool = False

    @field_validator("sports")
    @classmethod
    def check_sports(cls, value: list[str]) -> list[str]:
        cleaned = [s.strip().lower() for s in value]
        if not cleaned:
            raise ValueError("At least one sport is required")
        for sport in cleaned:
            if not _SPORT_KEY.match(sport):
                raise ValueError(f"Malformed sport key: {sport!r}")
        return list(dict.fromkeys(cleaned))

    @field_validator("regions")
    @classmethod
    def check_regions(cls, value: list[str]) -> list[str]:
        cleaned = [r.strip().lower() for r in value]
        if not cleaned:
            raise ValueError("At least one region is required")
        unknown = sorted(set(cleaned) - VALID_REGIONS)
        if unknown:
            raise ValueError(f"Unknown regions: {unknown}")
        return list(dict.fromkeys(cleaned))

    @field_validator("markets")
    @classmethod
    def check_markets(cls, value: list[str]) -> list[str]:
        cleaned = [m.strip().lower() for m in value]
        if not cleaned:
            raise ValueError("At least one market is required")
        unknown = sorted(set(cleaned) - VALID_MARKETS)
        if unknown:
            raise ValueError(f"Unknown markets: {unknown}")
        return list(dict.fromkeys(cleaned))

    @classmethod
    def build(cls, **params) -> "ScanFilters":
        """Validate raw parameters, reporting problems as InvalidInput."""
        try:
            return cls(**params)
        except ValidationError as exc:
            raise InvalidInput(f"Malformed filter parameters: {exc}") from exc

    def resolve_sports(self, default_sports: list[str]) -> list[str]:
        if ALL_SPORTS in self.sports:
            return list(default_sports)
        return list(self.sports)
