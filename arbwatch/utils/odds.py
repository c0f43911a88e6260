"""Odds conversion utilities.

Decimal odds are the canonical internal representation; American odds
are accepted from the provider and shown alongside decimal on output.
"""


def american_to_decimal(american_odds: int | float) -> float:
    """
    American → decimal. +150 is 2.50, -125 is 1.80.

    Raises ValueError for values inside (-100, 100), which are not valid
    American prices.
    """
    if -100 < american_odds < 100:
        raise ValueError(f"Invalid American odds: {american_odds}")
    if american_odds > 0:
        return 1 + american_odds / 100
    return 1 + 100 / -american_odds


def decimal_to_american(decimal_odds: float) -> int:
    """Decimal → American, rounded to whole points. 2.50 is +150, 1.80 is -125."""
    if decimal_odds <= 1.0:
        raise ValueError(f"Decimal odds must be > 1.0, got {decimal_odds}")
    profit_per_unit = decimal_odds - 1
    if profit_per_unit >= 1:
        return int(round(profit_per_unit * 100))
    return int(round(-100 / profit_per_unit))


def format_american_odds(american_odds: int) -> str:
    return f"+{american_odds}" if american_odds > 0 else str(american_odds)


def normalize_price(price: float, price_format: str = "decimal") -> float:
    """Convert a provider price in the given format to decimal odds."""
    if price_format == "decimal":
        return float(price)
    if price_format == "american":
        return american_to_decimal(float(price))
    raise ValueError(f"Unsupported price format: {price_format}")
