"""Market, outcome and sportsbook normalization.

Maps provider-specific keys onto canonical identifiers so quotes from
different sportsbooks line up on the same market and outcome ids.
"""

import hashlib
import re

MARKET_TYPE_ALIASES: dict[str, str] = {
    "ml": "moneyline",
    "money line": "moneyline",
    "h2h": "moneyline",
    "head to head": "moneyline",
    "spread": "spread",
    "spreads": "spread",
    "ats": "spread",
    "point spread": "spread",
    "handicap": "spread",
    "total": "total",
    "totals": "total",
    "ou": "total",
    "over/under": "total",
    "over under": "total",
}

MARKET_DESCRIPTIONS: dict[str, str] = {
    "moneyline": "Moneyline",
    "spread": "Point Spread",
    "total": "Over/Under",
}

SPORTSBOOK_NAMES: dict[str, str] = {
    "fanduel": "FanDuel",
    "draftkings": "DraftKings",
    "caesars": "Caesars",
    "williamhill_us": "Caesars",
    "betmgm": "BetMGM",
    "betrivers": "BetRivers",
    "pointsbet": "PointsBet",
    "pointsbetus": "PointsBet",
    "wynnbet": "WynnBET",
}

# Provider keys that refer to the same book under a different name
SPORTSBOOK_ALIASES: dict[str, str] = {
    "williamhill_us": "caesars",
    "pointsbetus": "pointsbet",
}


def normalize_market_type(market_type: str) -> str:
    """
    Normalize market type to canonical form.

    Examples:
        "h2h" → "moneyline"
        "spreads" → "spread"
        "Over/Under" → "total"
    """
    cleaned = re.sub(r"\s+", " ", market_type.strip().lower())
    return MARKET_TYPE_ALIASES.get(cleaned, cleaned)


def normalize_sportsbook(key: str) -> str:
    cleaned = key.strip().lower()
    return SPORTSBOOK_ALIASES.get(cleaned, cleaned)


def sportsbook_display_name(key: str) -> str:
    return SPORTSBOOK_NAMES.get(key, key)


def market_description(market_type: str) -> str:
    return MARKET_DESCRIPTIONS.get(market_type, market_type.upper())


def outcome_id(name: str, point: float | None = None) -> str:
    """
    Canonical outcome id from the outcome name and optional line.

    "Boston Celtics" → "boston_celtics"
    "Over", 45.5 → "over_45.5"
    """
    slug = re.sub(r"[^a-z0-9]+", "_", name.strip().lower()).strip("_")
    if point is not None:
        return f"{slug}_{point:g}"
    return slug


def market_id(event_id: str, market_type: str, line: float | None = None) -> str:
    """Deterministic market id so every sportsbook's quotes share one market."""
    suffix = f":{line:g}" if line is not None else ""
    return f"{event_id}:{market_type}{suffix}"


def event_id(provider_event_id: str) -> str:
    """Stable short id for a provider event."""
    digest = hashlib.sha1(provider_event_id.encode()).hexdigest()[:12]
    return f"evt_{digest}"
