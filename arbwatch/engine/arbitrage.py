"""Arbitrage opportunity detection.

Finds guaranteed profit opportunities by taking the best price for
each outcome of one market across all eligible sportsbooks.

Arbitrage Condition: sum(1 / best_price_o) < 1
Where the sum must also clear a configurable safety ceiling.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

import structlog

from ..config import Settings
from ..core.errors import InvalidInput
from ..core.math import detect_arbitrage, group_by_outcome, select_best_quote
from ..core.models import (
    ArbitrageOpportunity,
    Market,
    OpportunityLeg,
    Provenance,
    Quote,
)
from ..core.sizing import calculate_stakes
from ..utils.time import after, age_seconds, utc_now

logger = structlog.get_logger()


@dataclass(frozen=True)
class DetectionParams:
    """Tunable detection parameters.

    Confidence = recency_weight * recency + (1 - recency_weight) * count.
    The default 60/40 split and the 0.995 ceiling are design choices,
    not derived constants.
    """
    max_implied_sum: float = 0.995
    bankroll: float = 1000.0
    validity_window_seconds: int = 300
    quote_saturation: int = 5
    freshness_seconds: float = 3600.0
    recency_weight: float = 0.6

    @classmethod
    def from_settings(cls, settings: Settings) -> "DetectionParams":
        return cls(
            max_implied_sum=settings.max_implied_sum,
            bankroll=settings.default_bankroll,
            validity_window_seconds=settings.opportunity_validity_seconds,
            quote_saturation=settings.confidence_quote_saturation,
            freshness_seconds=settings.confidence_freshness_seconds,
            recency_weight=settings.confidence_recency_weight,
        )


def calculate_confidence(
    quotes: list[Quote],
    now: datetime,
    params: DetectionParams,
) -> float:
    """
    Confidence score in [0, 1].

    - count: contributing quotes / saturation, capped at 1
    - recency: mean per-quote freshness credit; a quote older than the
      freshness ceiling earns zero
    """
    if not quotes:
        return 0.0

    count_score = min(1.0, len(quotes) / params.quote_saturation)

    credits = [
        max(0.0, 1.0 - age_seconds(q.captured_at, now) / params.freshness_seconds)
        for q in quotes
    ]
    recency_score = sum(credits) / len(credits)

    score = params.recency_weight * recency_score + (1 - params.recency_weight) * count_score
    return round(min(1.0, max(0.0, score)), 4)


def detect(
    market_quotes: Iterable[Quote],
    min_profit_pct: float,
    *,
    market: Market | None = None,
    params: DetectionParams = DetectionParams(),
    jurisdictions: Iterable[str] = (),
    now: datetime | None = None,
    provenance: Provenance = Provenance.LIVE,
) -> ArbitrageOpportunity | None:
    """
    Detect a sure-win combination in one market.

    Args:
        market_quotes: Quotes for a single market
        min_profit_pct: Minimum profit % to report
        market: Market definition; when given, every one of its outcomes
            must be quoted or the market is skipped
        params: Detection parameters (safety ceiling, bankroll, scoring)
        jurisdictions: Jurisdiction constraint that produced the quotes
        now: Evaluation time (defaults to current UTC time)

    Returns:
        An opportunity, or None when there is no arbitrage or the profit
        is below the threshold. "No opportunity" is never an exception.
    """
    quotes = list(market_quotes)
    if not quotes:
        return None

    market_ids = {q.market_id for q in quotes}
    if len(market_ids) > 1:
        raise InvalidInput(f"Quotes span multiple markets: {sorted(market_ids)}")
    market_id = quotes[0].market_id
    if market is not None and market.market_id != market_id:
        raise InvalidInput(f"Quotes are for {market_id}, not {market.market_id}")

    now = now or utc_now()
    groups = group_by_outcome(quotes)

    if market is not None:
        unknown = set(groups) - set(market.outcome_ids)
        if unknown:
            logger.warning("unknown_outcomes_ignored", market_id=market_id, outcomes=sorted(unknown))
        missing = [o for o in market.outcome_ids if o not in groups]
        if missing:
            logger.debug("market_skipped_missing_prices", market_id=market_id, missing=missing)
            return None
        outcome_ids = market.outcome_ids
    else:
        outcome_ids = list(groups)

    if len(outcome_ids) < 2:
        return None

    best = [select_best_quote(groups[outcome]) for outcome in outcome_ids]
    prices = [q.price for q in best]

    arb = detect_arbitrage(prices, params.max_implied_sum)
    if not arb.is_arbitrage or arb.profit_pct < min_profit_pct:
        return None

    sizing = calculate_stakes(prices, params.bankroll)

    legs = tuple(
        OpportunityLeg(
            sportsbook=quote.sportsbook,
            outcome_id=quote.outcome_id,
            price=quote.price,
            stake_fraction=fraction,
            stake=stake,
        )
        for quote, fraction, stake in zip(best, sizing.fractions, sizing.stakes)
    )

    contributing = [q for outcome in outcome_ids for q in groups[outcome]]

    return ArbitrageOpportunity(
        event_id=market.event_id if market is not None else "",
        market_id=market_id,
        market_type=market.market_type if market is not None else "",
        legs=legs,
        total_implied=arb.implied_prob_sum,
        expected_profit_pct=round(arb.profit_pct, 4),
        notional_bankroll=params.bankroll,
        locked_profit=sizing.guaranteed_profit,
        guaranteed_payout=sizing.guaranteed_cashout,
        validity_window_seconds=params.validity_window_seconds,
        confidence=calculate_confidence(contributing, now, params),
        jurisdictions=tuple(sorted(jurisdictions)),
        provenance=provenance,
        created_at=now,
        expires_at=after(now, params.validity_window_seconds),
    )
