"""Stake sizing calculations for arbitrage and hedging.

Key Formulas:
    stake_i = B * (1 / odds_i) / sum(1 / odds)

    Guaranteed Cashout = stake_i * odds_i  (equal for every i)
    Guaranteed Profit  = cashout - B

    hedge_stake = potential_return / hedge_odds
"""

from typing import NamedTuple

from .math import calculate_implied_probability


class StakeSizing(NamedTuple):
    """Result of stake sizing calculation."""
    fractions: list[float]       # Share of the bankroll per outcome
    stakes: list[float]          # Stake for each outcome (rounded to cents)
    total_stake: float           # Capital required
    guaranteed_cashout: float    # Payout regardless of outcome
    guaranteed_profit: float     # Locked profit in currency
    profit_pct: float            # Profit as percentage of total stake


class HedgeSizing(NamedTuple):
    """Result of hedge sizing for an already-placed bet."""
    hedge_stake: float
    hedge_return: float
    profit_if_original_wins: float
    profit_if_hedge_wins: float

    @property
    def locked_low(self) -> float:
        return min(self.profit_if_original_wins, self.profit_if_hedge_wins)

    @property
    def locked_high(self) -> float:
        return max(self.profit_if_original_wins, self.profit_if_hedge_wins)


def calculate_stakes(
    decimal_odds: list[float],
    total_capital: float,
) -> StakeSizing:
    """
    Calculate optimal stake sizing for arbitrage.

    Stakes are proportional to each outcome's implied probability,
    normalised so they sum to the bankroll. This equalises the payout
    whichever outcome wins.

    Args:
        decimal_odds: List of decimal odds for each outcome
        total_capital: Total amount to stake across all outcomes

    Returns:
        StakeSizing with stakes and profit calculations
    """
    if len(decimal_odds) < 2:
        raise ValueError("Need at least 2 outcomes for stake sizing")
    if total_capital <= 0:
        raise ValueError("Bankroll must be positive")

    implied_probs = [calculate_implied_probability(odds) for odds in decimal_odds]
    prob_sum = sum(implied_probs)

    fractions = [prob / prob_sum for prob in implied_probs]
    stakes = [round(total_capital * fraction, 2) for fraction in fractions]

    # Cashout is identical before rounding; use the exact value
    guaranteed_cashout = total_capital / prob_sum
    guaranteed_profit = guaranteed_cashout - total_capital
    profit_pct = (guaranteed_profit / total_capital) * 100

    return StakeSizing(
        fractions=fractions,
        stakes=stakes,
        total_stake=round(sum(stakes), 2),
        guaranteed_cashout=round(guaranteed_cashout, 2),
        guaranteed_profit=round(guaranteed_profit, 2),
        profit_pct=profit_pct,
    )


def calculate_hedge_stake(
    original_stake: float,
    original_odds: float,
    hedge_odds: float,
) -> HedgeSizing:
    """
    Size a hedge that equalises the return of both outcomes.

    The hedge stake is rounded to cents first, and both profit scenarios
    are computed from the rounded stake the user would actually place.
    """
    calculate_implied_probability(hedge_odds)

    potential_return = original_stake * original_odds
    hedge_stake = round(potential_return / hedge_odds, 2)
    hedge_return = hedge_stake * hedge_odds
    outlay = original_stake + hedge_stake

    return HedgeSizing(
        hedge_stake=hedge_stake,
        hedge_return=hedge_return,
        profit_if_original_wins=potential_return - outlay,
        profit_if_hedge_wins=hedge_return - outlay,
    )
