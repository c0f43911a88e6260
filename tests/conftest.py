"""Shared fixtures: a controllable clock, a scripted odds provider and model factories."""

from datetime import datetime, timedelta, timezone

import pytest

from arbwatch.config import Settings
from arbwatch.core.models import (
    CreditUsage,
    Event,
    Market,
    MarketOutcome,
    ProviderResult,
    Quote,
    QuoteBatch,
    SportFailure,
)
from arbwatch.ingestion.odds_api import OddsProvider, OddsQuery
from arbwatch.services import build_services
from arbwatch.storage.memory import InMemoryStorage

T0 = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)

EVENT_ID = "evt_celtics_lakers"
MONEYLINE_ID = f"{EVENT_ID}:moneyline"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class FakeProvider(OddsProvider):
    """Returns scripted batches and records every query it receives."""

    def __init__(
        self,
        batches: list[QuoteBatch] | None = None,
        fail_sports: dict[str, str] | None = None,
        cost_per_sport: int = 6,
        remaining: int | None = 494,
    ):
        self.batches = batches or []
        self.fail_sports = fail_sports or {}
        self.cost_per_sport = cost_per_sport
        self.remaining = remaining
        self.calls: list[OddsQuery] = []
        self.closed = False

    async def fetch(self, query: OddsQuery) -> ProviderResult:
        self.calls.append(query)
        failures = [
            SportFailure(sport=sport, error=f"{sport} down", kind=kind)
            for sport, kind in self.fail_sports.items()
            if sport in query.sports
        ]
        succeeded = len(query.sports) - len(failures)
        cost = succeeded * self.cost_per_sport
        return ProviderResult(
            batches=list(self.batches) if succeeded else [],
            credit_usage=CreditUsage(used=500 - (self.remaining or 0), remaining=self.remaining, cost=cost),
            failures=failures,
            sports_requested=len(query.sports),
        )

    async def close(self) -> None:
        self.closed = True


def make_quote(
    sportsbook: str,
    outcome_id: str,
    price: float,
    market_id: str = MONEYLINE_ID,
    captured_at: datetime = T0,
    **kwargs,
) -> Quote:
    return Quote(
        market_id=market_id,
        sportsbook=sportsbook,
        outcome_id=outcome_id,
        price=price,
        captured_at=captured_at,
        **kwargs,
    )


def make_market(
    market_id: str = MONEYLINE_ID,
    outcomes: tuple[str, ...] = ("celtics", "lakers"),
    event_id: str = EVENT_ID,
    market_type: str = "moneyline",
) -> Market:
    return Market(
        market_id=market_id,
        event_id=event_id,
        market_type=market_type,
        outcomes=tuple(MarketOutcome(id=o, label=o.title()) for o in outcomes),
    )


def make_event(
    markets: tuple[Market, ...] | None = None,
    start_time: datetime = T0 + timedelta(hours=2),
    **kwargs,
) -> Event:
    return Event(
        event_id=EVENT_ID,
        sport="basketball",
        league="NBA",
        home_team="Los Angeles Lakers",
        away_team="Boston Celtics",
        start_time=start_time,
        markets=markets if markets is not None else (make_market(),),
        **kwargs,
    )


def arbitrage_quotes(captured_at: datetime = T0) -> list[Quote]:
    """Three books on a two-way moneyline: 2.10 / 2.15 on one side, 1.90 on the other."""
    return [
        make_quote("draftkings", "celtics", 2.10, captured_at=captured_at),
        make_quote("fanduel", "celtics", 2.15, captured_at=captured_at),
        make_quote("betmgm", "lakers", 1.90, captured_at=captured_at),
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        odds_api_key="test-key",
        default_sports=["basketball_nba"],
        default_regions=["us"],
        default_markets=["h2h"],
        default_jurisdictions=["NJ"],
        scheduler_enabled=False,
    )


@pytest.fixture
def arbitrage_batch(clock):
    return QuoteBatch(event=make_event(), quotes=arbitrage_quotes(clock()))


@pytest.fixture
def provider(arbitrage_batch):
    return FakeProvider(batches=[arbitrage_batch])


@pytest.fixture
def services(settings, provider, clock):
    return build_services(settings, storage=InMemoryStorage(), provider=provider, clock=clock)
