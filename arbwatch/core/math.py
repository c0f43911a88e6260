"""Pure pricing math over decimal odds.

    implied probability   P = 1 / price
    sure win              sum(P) < 1, and sum(P) <= the safety ceiling
    profit %              (1 / sum(P) - 1) * 100
"""

from typing import Iterable, NamedTuple

from .models import Quote


class ArbitrageResult(NamedTuple):
    """Outcome of testing one set of best prices."""
    is_arbitrage: bool
    profit_pct: float
    implied_prob_sum: float


def calculate_implied_probability(decimal_odds: float) -> float:
    """1 / price. A price of 2.00 is a 50% chance; 1.50 is 66.7%."""
    if decimal_odds <= 1.0:
        raise ValueError(f"Decimal odds must be > 1.0, got {decimal_odds}")
    return 1.0 / decimal_odds


def detect_arbitrage(
    decimal_odds: list[float],
    max_implied_sum: float = 1.0,
) -> ArbitrageResult:
    """
    Test the best price of every outcome of one market for a sure win.

    `max_implied_sum` is the safety ceiling: 0.98 demands a 2% cushion
    below the break-even sum of 1.
    """
    if len(decimal_odds) < 2:
        raise ValueError("Need at least 2 outcomes to check arbitrage")

    prob_sum = sum(calculate_implied_probability(odds) for odds in decimal_odds)

    is_arb = prob_sum < 1.0 and prob_sum <= max_implied_sum
    profit_pct = (1.0 / prob_sum - 1.0) * 100 if is_arb else 0.0

    return ArbitrageResult(
        is_arbitrage=is_arb,
        profit_pct=profit_pct,
        implied_prob_sum=prob_sum,
    )


def select_best_quote(quotes: Iterable[Quote]) -> Quote:
    """
    Pick the highest-priced quote.

    Ties on price go to the most recently captured quote.
    """
    quotes = list(quotes)
    if not quotes:
        raise ValueError("No quotes provided")
    return max(quotes, key=lambda q: (q.price, q.captured_at))


def group_by_outcome(quotes: Iterable[Quote]) -> dict[str, list[Quote]]:
    """Group quotes by outcome id, preserving first-seen outcome order."""
    groups: dict[str, list[Quote]] = {}
    for quote in quotes:
        groups.setdefault(quote.outcome_id, []).append(quote)
    return groups
