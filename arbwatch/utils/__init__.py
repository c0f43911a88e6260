from .odds import (
    american_to_decimal,
    decimal_to_american,
    format_american_odds,
    normalize_price,
)
from .cache import CacheEntry, TTLCache, Clock
from .time import utc_now, seconds_until, age_seconds, after, Timer
from .logging import setup_logging

__all__ = [
    "american_to_decimal",
    "decimal_to_american",
    "format_american_odds",
    "normalize_price",
    "CacheEntry",
    "TTLCache",
    "Clock",
    "utc_now",
    "seconds_until",
    "age_seconds",
    "after",
    "Timer",
    "setup_logging",
]
