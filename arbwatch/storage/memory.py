"""In-memory storage backend.

Used by default and in tests. All methods are coroutines so callers
are written the same way they would be against a database.
"""

import asyncio
from datetime import datetime
from typing import Iterable

from ..core.errors import NotFound
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
from .base import Storage


class InMemoryStorage(Storage):

    def __init__(self):
        self._events: dict[str, Event] = {}
        self._markets: dict[str, Market] = {}
        self._quotes: dict[str, list[Quote]] = {}  # market_id -> quotes, append-only
        self._opportunities: list[ArbitrageOpportunity] = []
        self._bets: dict[str, UserBet] = {}
        self._hedges: dict[str, list[HedgeSuggestion]] = {}
        self._job_runs: dict[str, JobRun] = {}
        self._costs: list[CostRecord] = []
        self._flags: dict[str, FeatureFlag] = {}
        self._audit: list[AuditEntry] = []
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Events and markets
    # -------------------------------------------------------------------------

    async def upsert_event(self, event: Event) -> Event:
        async with self._lock:
            existing = self._events.get(event.event_id)
            if existing is not None:
                # Keep markets seen earlier that this refresh did not include
                known = {m.market_id: m for m in existing.markets}
                known.update({m.market_id: m for m in event.markets})
                event = event.model_copy(update={"markets": tuple(known.values())})
            self._events[event.event_id] = event
            for market in event.markets:
                self._markets[market.market_id] = market
            return event

    async def get_event(self, event_id: str) -> Event | None:
        return self._events.get(event_id)

    async def get_market(self, market_id: str) -> Market | None:
        return self._markets.get(market_id)

    async def list_markets(self, event_ids: Iterable[str] | None = None) -> list[Market]:
        if event_ids is None:
            return list(self._markets.values())
        wanted = set(event_ids)
        return [m for m in self._markets.values() if m.event_id in wanted]

    # -------------------------------------------------------------------------
    # Quotes
    # -------------------------------------------------------------------------

    async def add_quotes(self, quotes: Iterable[Quote]) -> int:
        count = 0
        async with self._lock:
            for quote in quotes:
                self._quotes.setdefault(quote.market_id, []).append(quote)
                count += 1
        return count

    async def latest_quotes(self, market_id: str, since: datetime | None = None) -> list[Quote]:
        latest: dict[tuple[str, str], Quote] = {}
        for quote in self._quotes.get(market_id, []):
            if since is not None and quote.captured_at < since:
                continue
            key = (quote.sportsbook, quote.outcome_id)
            current = latest.get(key)
            if current is None or quote.captured_at >= current.captured_at:
                latest[key] = quote
        return list(latest.values())

    async def purge_quotes_before(self, cutoff: datetime) -> int:
        removed = 0
        async with self._lock:
            for market_id, quotes in self._quotes.items():
                kept = [q for q in quotes if q.captured_at >= cutoff]
                removed += len(quotes) - len(kept)
                self._quotes[market_id] = kept
        return removed

    # -------------------------------------------------------------------------
    # Opportunities
    # -------------------------------------------------------------------------

    async def create_opportunities(self, opportunities: Iterable[ArbitrageOpportunity]) -> int:
        async with self._lock:
            before = len(self._opportunities)
            self._opportunities.extend(opportunities)
            return len(self._opportunities) - before

    async def list_opportunities(self, active_at: datetime | None = None) -> list[ArbitrageOpportunity]:
        if active_at is None:
            return list(self._opportunities)
        return [o for o in self._opportunities if not o.is_expired(active_at)]

    async def delete_expired_opportunities(self, now: datetime) -> int:
        async with self._lock:
            before = len(self._opportunities)
            self._opportunities = [o for o in self._opportunities if not o.is_expired(now)]
            return before - len(self._opportunities)

    # -------------------------------------------------------------------------
    # User bets and hedges
    # -------------------------------------------------------------------------

    async def create_user_bet(self, bet: UserBet) -> UserBet:
        self._bets[bet.id] = bet
        return bet

    async def get_user_bet(self, bet_id: str) -> UserBet | None:
        return self._bets.get(bet_id)

    async def update_user_bet(self, bet_id: str, **changes) -> UserBet:
        async with self._lock:
            bet = self._bets.get(bet_id)
            if bet is None:
                raise NotFound(f"Bet not found: {bet_id}")
            updated = bet.model_copy(update=changes)
            self._bets[bet_id] = updated
            return updated

    async def list_user_bets(
        self,
        tracked: bool | None = None,
        settlement: Settlement | None = None,
    ) -> list[UserBet]:
        bets = list(self._bets.values())
        if tracked is not None:
            bets = [b for b in bets if b.is_tracked == tracked]
        if settlement is not None:
            bets = [b for b in bets if b.settlement == settlement]
        return bets

    async def create_hedge_suggestion(self, suggestion: HedgeSuggestion) -> HedgeSuggestion:
        async with self._lock:
            self._hedges.setdefault(suggestion.bet_id, []).append(suggestion)
        return suggestion

    async def list_hedge_suggestions(self, bet_id: str) -> list[HedgeSuggestion]:
        return sorted(reversed(self._hedges.get(bet_id, [])), key=lambda s: s.created_at, reverse=True)

    # -------------------------------------------------------------------------
    # Jobs, costs, flags, audit
    # -------------------------------------------------------------------------

    async def create_job_run(self, run: JobRun) -> JobRun:
        self._job_runs[run.id] = run
        return run

    async def update_job_run(self, run_id: str, **changes) -> JobRun:
        async with self._lock:
            run = self._job_runs.get(run_id)
            if run is None:
                raise NotFound(f"Job run not found: {run_id}")
            updated = run.model_copy(update=changes)
            self._job_runs[run_id] = updated
            return updated

    async def list_job_runs(self, job_name: str | None = None) -> list[JobRun]:
        runs = list(reversed(self._job_runs.values()))
        if job_name is not None:
            runs = [r for r in runs if r.job_name == job_name]
        return sorted(runs, key=lambda r: r.started_at, reverse=True)

    async def create_cost_record(self, record: CostRecord) -> CostRecord:
        self._costs.append(record)
        return record

    async def get_feature_flag(self, key: str) -> FeatureFlag | None:
        return self._flags.get(key)

    async def upsert_feature_flag(self, flag: FeatureFlag) -> FeatureFlag:
        self._flags[flag.key] = flag
        return flag

    async def list_feature_flags(self) -> list[FeatureFlag]:
        return sorted(self._flags.values(), key=lambda f: f.key)

    async def create_audit_entry(self, entry: AuditEntry) -> AuditEntry:
        self._audit.append(entry)
        return entry

    async def list_audit_entries(self, actor: str | None = None) -> list[AuditEntry]:
        entries = [e for e in reversed(self._audit) if actor is None or e.actor == actor]
        return sorted(entries, key=lambda e: e.timestamp, reverse=True)

    @property
    def cost_records(self) -> list[CostRecord]:
        return list(self._costs)
