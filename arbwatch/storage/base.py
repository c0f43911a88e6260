"""Storage collaborator contract.

The engine only needs these operations; a relational backend can
implement them the same way the in-memory store does.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable

from ..core.models import (
    ArbitrageOpportunity,
    AuditEntry,
    CostRecord,
    Event,
    FeatureFlag,
    HedgeSuggestion,
    JobRun,
    Market,
    Quote,
    Settlement,
    UserBet,
)


class Storage(ABC):
    # Events and markets
    @abstractmethod
    async def upsert_event(self, event: Event) -> Event:
        pass

    @abstractmethod
    async def get_event(self, event_id: str) -> Event | None:
        pass

    @abstractmethod
    async def get_market(self, market_id: str) -> Market | None:
        pass

    @abstractmethod
    async def list_markets(self, event_ids: Iterable[str] | None = None) -> list[Market]:
        pass

    # Quotes
    @abstractmethod
    async def add_quotes(self, quotes: Iterable[Quote]) -> int:
        pass

    @abstractmethod
    async def latest_quotes(self, market_id: str, since: datetime | None = None) -> list[Quote]:
        """Newest quote per (sportsbook, outcome), optionally no older than `since`."""

    @abstractmethod
    async def purge_quotes_before(self, cutoff: datetime) -> int:
        pass

    # Opportunities
    @abstractmethod
    async def create_opportunities(self, opportunities: Iterable[ArbitrageOpportunity]) -> int:
        pass

    @abstractmethod
    async def list_opportunities(self, active_at: datetime | None = None) -> list[ArbitrageOpportunity]:
        pass

    @abstractmethod
    async def delete_expired_opportunities(self, now: datetime) -> int:
        pass

    # User bets
    @abstractmethod
    async def create_user_bet(self, bet: UserBet) -> UserBet:
        pass

    @abstractmethod
    async def get_user_bet(self, bet_id: str) -> UserBet | None:
        pass

    @abstractmethod
    async def update_user_bet(self, bet_id: str, **changes) -> UserBet:
        pass

    @abstractmethod
    async def list_user_bets(
        self,
        tracked: bool | None = None,
        settlement: Settlement | None = None,
    ) -> list[UserBet]:
        pass

    # Hedge suggestions
    @abstractmethod
    async def create_hedge_suggestion(self, suggestion: HedgeSuggestion) -> HedgeSuggestion:
        pass

    @abstractmethod
    async def list_hedge_suggestions(self, bet_id: str) -> list[HedgeSuggestion]:
        """Newest first."""

    # Jobs, costs, flags, audit
    @abstractmethod
    async def create_job_run(self, run: JobRun) -> JobRun:
        pass

    @abstractmethod
    async def update_job_run(self, run_id: str, **changes) -> JobRun:
        pass

    @abstractmethod
    async def list_job_runs(self, job_name: str | None = None) -> list[JobRun]:
        """Newest first."""

    @abstractmethod
    async def create_cost_record(self, record: CostRecord) -> CostRecord:
        pass

    @abstractmethod
    async def get_feature_flag(self, key: str) -> FeatureFlag | None:
        pass

    @abstractmethod
    async def upsert_feature_flag(self, flag: FeatureFlag) -> FeatureFlag:
        pass

    @abstractmethod
    async def list_feature_flags(self) -> list[FeatureFlag]:
        pass

    @abstractmethod
    async def create_audit_entry(self, entry: AuditEntry) -> AuditEntry:
        pass

    @abstractmethod
    async def list_audit_entries(self, actor: str | None = None) -> list[AuditEntry]:
        pass
