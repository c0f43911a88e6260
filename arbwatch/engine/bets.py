"""User bet bookkeeping: record, track for hedging, settle."""

import structlog
from pydantic import ValidationError

from ..core.errors import InvalidInput, NotFound
from ..core.models import HedgeSuggestion, Settlement, UserBet
from ..storage.audit import AuditLog
from ..storage.base import Storage
from .hedge import HedgeMonitor

logger = structlog.get_logger()


class BetService:

    def __init__(self, storage: Storage, audit: AuditLog, hedge_monitor: HedgeMonitor):
        self._storage = storage
        self._audit = audit
        self._hedge_monitor = hedge_monitor

    async def create_bet(self, actor: str, **fields) -> UserBet:
        """Record a bet the user has already placed by hand."""
        try:
            bet = UserBet(user_id=actor, **fields)
        except ValidationError as exc:
            raise InvalidInput(f"Invalid bet: {exc}") from exc

        market = await self._storage.get_market(bet.market_id)
        if market is not None:
            if market.event_id != bet.event_id:
                raise InvalidInput(f"Market {bet.market_id} does not belong to event {bet.event_id}")
            if bet.outcome_id not in market.outcome_ids:
                raise InvalidInput(f"Unknown outcome {bet.outcome_id} for market {bet.market_id}")

        bet = await self._storage.create_user_bet(bet)
        await self._audit.record(actor, "bet_created", f"user_bet:{bet.id}", {
            "market_id": bet.market_id,
            "outcome_id": bet.outcome_id,
            "sportsbook": bet.sportsbook,
            "stake": bet.stake,
            "price": bet.price_at_bet,
        })
        logger.info("bet_created", bet_id=bet.id, market_id=bet.market_id, stake=bet.stake)
        return bet

    async def get_bet(self, bet_id: str) -> UserBet:
        bet = await self._storage.get_user_bet(bet_id)
        if bet is None:
            raise NotFound(f"Bet not found: {bet_id}")
        return bet

    async def list_bets(
        self,
        tracked: bool | None = None,
        settlement: Settlement | None = None,
    ) -> list[UserBet]:
        return await self._storage.list_user_bets(tracked=tracked, settlement=settlement)

    async def set_tracking(self, bet_id: str, tracked: bool, actor: str) -> UserBet:
        """Toggle hedge tracking. Only pending bets can be tracked."""
        bet = await self.get_bet(bet_id)
        if tracked and bet.settlement != Settlement.PENDING:
            raise InvalidInput(f"Bet {bet_id} is already settled ({bet.settlement.value})")

        bet = await self._storage.update_user_bet(bet_id, is_tracked=tracked)
        await self._audit.record(actor, "bet_tracked" if tracked else "bet_untracked", f"user_bet:{bet_id}")
        return bet

    async def settle(self, bet_id: str, settlement: Settlement, actor: str) -> UserBet:
        """Settle a pending bet. Settling stops hedge tracking."""
        if settlement == Settlement.PENDING:
            raise InvalidInput("Settlement must be won, lost, void or cashout")

        bet = await self.get_bet(bet_id)
        if bet.settlement != Settlement.PENDING:
            raise InvalidInput(f"Bet {bet_id} is already settled ({bet.settlement.value})")

        bet = await self._storage.update_user_bet(bet_id, settlement=settlement, is_tracked=False)
        await self._audit.record(actor, "bet_settled", f"user_bet:{bet_id}", {
            "settlement": settlement.value,
        })
        logger.info("bet_settled", bet_id=bet_id, settlement=settlement.value)
        return bet

    async def hedge(self, bet_id: str) -> HedgeSuggestion | None:
        """Evaluate one bet for a hedge right now."""
        await self.get_bet(bet_id)
        return await self._hedge_monitor.evaluate_bet(bet_id)
