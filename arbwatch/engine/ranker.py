"""Opportunity ranking and persistence.

Ranking key is locked profit in currency, not percentage: a smaller
edge on a larger notional can be worth more. Ties go to higher
confidence, then to the earlier expiry.
"""

from typing import Iterable

import structlog

from ..core.models import ArbitrageOpportunity
from ..storage.base import Storage

logger = structlog.get_logger()


def _rank_key(opp: ArbitrageOpportunity):
    return (-opp.locked_profit, -opp.confidence, opp.expires_at)


def rank(opportunities: Iterable[ArbitrageOpportunity]) -> list[ArbitrageOpportunity]:
    """Sort opportunities best-first."""
    return sorted(opportunities, key=_rank_key)


def max_profit_pick(opportunities: Iterable[ArbitrageOpportunity]) -> ArbitrageOpportunity | None:
    """Head of the ranked list, or None when empty."""
    ranked = rank(opportunities)
    return ranked[0] if ranked else None


class OpportunityRanker:
    """Ranks a scan's opportunities and writes them as fresh rows.

    Existing rows are never updated; the cleanup job purges rows
    past their expiry.
    """

    def __init__(self, storage: Storage):
        self._storage = storage

    async def publish(self, opportunities: Iterable[ArbitrageOpportunity]) -> list[ArbitrageOpportunity]:
        ranked = rank(opportunities)
        if ranked:
            await self._storage.create_opportunities(ranked)
            logger.info(
                "opportunities_published",
                count=len(ranked),
                top_locked_profit=ranked[0].locked_profit,
                top_profit_pct=ranked[0].expected_profit_pct,
            )
        return ranked
