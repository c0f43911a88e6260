"""Odds ingestion: fetch, filter by eligibility, persist, account for credits."""

from dataclasses import dataclass, field
from typing import Iterable

import structlog

from ..core.eligibility import EligibilityRegistry, normalize_jurisdictions
from ..core.errors import ProviderUnavailable
from ..core.filters import ScanFilters
from ..core.models import CostRecord, CreditUsage, Event, SportFailure
from ..engine.budget import CreditBudget
from ..engine.estimator import estimate_scan_cost
from ..storage.audit import AuditLog
from ..storage.base import Storage
from .odds_api import OddsProvider, OddsQuery

logger = structlog.get_logger()


@dataclass
class IngestionResult:
    events: list[Event] = field(default_factory=list)
    market_ids: list[str] = field(default_factory=list)
    quotes_stored: int = 0
    credit_usage: CreditUsage = field(default_factory=CreditUsage)
    failures: list[SportFailure] = field(default_factory=list)
    eligible_bookmakers: frozenset[str] = frozenset()


class IngestionService:
    """
    Pulls odds from the provider and writes them to storage.

    Only quotes from bookmakers licensed in every selected jurisdiction
    are stored. Each stored quote carries the jurisdictions its book is
    licensed in.
    """

    def __init__(
        self,
        provider: OddsProvider,
        storage: Storage,
        registry: EligibilityRegistry,
        budget: CreditBudget,
        audit: AuditLog,
        default_sports: Iterable[str],
    ):
        self._provider = provider
        self._storage = storage
        self._registry = registry
        self._budget = budget
        self._audit = audit
        self._default_sports = list(default_sports)

    async def ingest(
        self,
        filters: ScanFilters,
        actor: str = "system",
        operation: str = "odds_fetch",
    ) -> IngestionResult:
        """
        Fetch and store odds for the filters.

        Raises InvalidInput / NoEligibleBookmakers before any provider call,
        BudgetExhausted when credits cannot cover the estimated cost and
        ProviderUnavailable when every requested sport failed.
        """
        jurisdictions = normalize_jurisdictions(filters.jurisdictions)
        eligible = self._registry.require_eligible_bookmakers(jurisdictions)
        snapshot = self._registry.snapshot()

        sports = filters.resolve_sports(self._default_sports)
        query = OddsQuery(
            sports=tuple(sports),
            regions=tuple(filters.regions),
            markets=tuple(filters.markets),
            bookmakers=eligible,
            live_only=filters.live_only,
        )

        estimated_cost = estimate_scan_cost(filters, self._default_sports)
        async with self._budget.reserve(estimated_cost):
            provider_result = await self._provider.fetch(query)
            await self._budget.settle(provider_result.credit_usage)

        result = IngestionResult(
            credit_usage=provider_result.credit_usage,
            failures=list(provider_result.failures),
            eligible_bookmakers=eligible,
        )

        for batch in provider_result.batches:
            event = await self._storage.upsert_event(batch.event)
            quotes = [
                quote.model_copy(update={"jurisdictions": snapshot.jurisdictions_for(quote.sportsbook)})
                for quote in batch.quotes
                if quote.sportsbook in eligible
            ]
            result.quotes_stored += await self._storage.add_quotes(quotes)
            result.events.append(event)
            result.market_ids.extend(m.market_id for m in batch.event.markets)

        await self._storage.create_cost_record(CostRecord(
            operation=operation,
            credits_used=provider_result.credit_usage.cost,
            details={
                "sports": sports,
                "regions": filters.regions,
                "markets": filters.markets,
                "estimated_credits": estimated_cost,
                "failed_sports": [f.sport for f in provider_result.failures],
            },
        ))
        await self._audit.record(actor, operation, None, {
            "jurisdictions": sorted(jurisdictions),
            "sports": sports,
            "events": len(result.events),
            "quotes": result.quotes_stored,
            "credits_used": provider_result.credit_usage.cost,
        })

        logger.info(
            "odds_ingested",
            operation=operation,
            events=len(result.events),
            quotes=result.quotes_stored,
            failed_sports=len(result.failures),
            credits_used=provider_result.credit_usage.cost,
            credits_remaining=provider_result.credit_usage.remaining,
        )

        if provider_result.all_failed:
            raise ProviderUnavailable(
                "Every requested sport failed: "
                + "; ".join(f"{f.sport}: {f.error}" for f in provider_result.failures)
            )
        return result
