"""Hedge calculation for tracked user bets.

Given a placed bet and live prices on the opposing outcomes, size an
offsetting bet that locks in profit whichever side wins.

    hedge_stake = stake * price_at_bet / hedge_price

A hedge is only suggested when the worse of the two outcomes still
shows a profit.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

import structlog

from ..config import Settings
from ..core.math import select_best_quote
from ..core.models import (
    EventStatus,
    HedgeLeg,
    HedgeSuggestion,
    Quote,
    Settlement,
    UserBet,
)
from ..core.sizing import calculate_hedge_stake
from ..storage.audit import AuditLog
from ..storage.base import Storage
from ..utils.cache import Clock
from ..utils.time import after, age_seconds, utc_now

logger = structlog.get_logger()


@dataclass(frozen=True)
class HedgeParams:
    freshness_seconds: float = 300.0
    base_confidence: float = 0.7
    validity_seconds: int = 120

    @classmethod
    def from_settings(cls, settings: Settings) -> "HedgeParams":
        return cls(
            freshness_seconds=settings.hedge_freshness_seconds,
            base_confidence=settings.hedge_base_confidence,
            validity_seconds=settings.hedge_validity_seconds,
        )


def calculate_hedge_confidence(quote: Quote, now: datetime, params: HedgeParams) -> float:
    """
    Confidence from the hedge quote's age only.

    The bet side is historical, so only the hedge leg can go stale.
    Fresh quotes score 1.0; old ones decay to the base confidence floor.
    """
    freshness = max(0.0, 1.0 - age_seconds(quote.captured_at, now) / params.freshness_seconds)
    return round(params.base_confidence + freshness * (1 - params.base_confidence), 2)


def calculate_hedge(
    bet: UserBet,
    opposing_quotes: Iterable[Quote],
    *,
    params: HedgeParams = HedgeParams(),
    now: datetime | None = None,
) -> HedgeSuggestion | None:
    """
    Compute a profit-locking hedge for a bet.

    Returns None when the bet is not tracked or already settled, when no
    opposing price exists, or when the best split cannot guarantee profit.
    """
    if not bet.is_tracked or bet.settlement != Settlement.PENDING:
        return None

    candidates = [
        q for q in opposing_quotes
        if q.market_id == bet.market_id and q.outcome_id != bet.outcome_id
    ]
    if not candidates:
        return None

    now = now or utc_now()
    best = select_best_quote(candidates)

    sizing = calculate_hedge_stake(bet.stake, bet.price_at_bet, best.price)
    locked_low = round(sizing.locked_low, 2)
    locked_high = round(sizing.locked_high, 2)

    if locked_low <= 0:
        logger.debug(
            "hedge_suppressed",
            bet_id=bet.id,
            hedge_price=best.price,
            locked_low=locked_low,
        )
        return None

    return HedgeSuggestion(
        bet_id=bet.id,
        legs=(
            HedgeLeg(
                sportsbook=best.sportsbook,
                outcome_id=best.outcome_id,
                price=best.price,
                stake=sizing.hedge_stake,
            ),
        ),
        locked_profit_low=locked_low,
        locked_profit_high=locked_high,
        rationale=(
            f"Lock in guaranteed profit of ${locked_low:.2f} - ${locked_high:.2f} "
            f"by staking ${sizing.hedge_stake:.2f} on {best.outcome_id} at "
            f"{best.price:.2f} ({best.sportsbook})"
        ),
        confidence=calculate_hedge_confidence(best, now, params),
        created_at=now,
        expires_at=after(now, params.validity_seconds),
    )


class HedgeMonitor:
    """
    Re-evaluates tracked bets against the latest stored quotes.

    Each emitted suggestion is persisted with its own, short expiry.
    """

    def __init__(
        self,
        storage: Storage,
        audit: AuditLog,
        params: HedgeParams = HedgeParams(),
        quote_max_age_seconds: float = 900.0,
        clock: Clock = utc_now,
    ):
        self._storage = storage
        self._audit = audit
        self._params = params
        self._quote_max_age = quote_max_age_seconds
        self._clock = clock

    async def evaluate_bet(self, bet_id: str) -> HedgeSuggestion | None:
        bet = await self._storage.get_user_bet(bet_id)
        if bet is None or not bet.is_tracked or bet.settlement != Settlement.PENDING:
            return None

        event = await self._storage.get_event(bet.event_id)
        if event is None or event.status != EventStatus.SCHEDULED:
            return None

        now = self._clock()
        if event.start_time <= now:
            return None

        quotes = await self._storage.latest_quotes(
            bet.market_id, since=after(now, -self._quote_max_age)
        )
        suggestion = calculate_hedge(bet, quotes, params=self._params, now=now)
        if suggestion is None:
            return None

        await self._storage.create_hedge_suggestion(suggestion)
        logger.info(
            "hedge_suggestion_created",
            bet_id=bet.id,
            locked_low=suggestion.locked_profit_low,
            confidence=suggestion.confidence,
        )
        await self._audit.system("hedge_suggestion_created", f"hedge_suggestion:{suggestion.id}", {
            "bet_id": bet.id,
            "locked_profit": suggestion.locked_profit_low,
        })
        return suggestion

    async def run(self) -> dict:
        """Evaluate every tracked pending bet. One bet failing never stops the pass."""
        bets = await self._storage.list_user_bets(tracked=True, settlement=Settlement.PENDING)

        emitted = 0
        failed = 0
        for bet in bets:
            try:
                if await self.evaluate_bet(bet.id) is not None:
                    emitted += 1
            except Exception:
                failed += 1
                logger.exception("hedge_evaluation_failed", bet_id=bet.id)

        return {"tracked_bets": len(bets), "suggestions": emitted, "failures": failed}

    async def active_alerts(self) -> list[tuple[UserBet, HedgeSuggestion]]:
        """Tracked pending bets paired with their newest unexpired suggestion."""
        now = self._clock()
        alerts = []
        for bet in await self._storage.list_user_bets(tracked=True, settlement=Settlement.PENDING):
            suggestions = await self._storage.list_hedge_suggestions(bet.id)
            if suggestions and not suggestions[0].is_expired(now):
                alerts.append((bet, suggestions[0]))
        return alerts
