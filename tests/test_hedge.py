"""Tests for hedge sizing and the hedge monitor."""

import asyncio
from datetime import timedelta

import pytest

from arbwatch.core.models import EventStatus, Settlement, UserBet
from arbwatch.engine.hedge import HedgeMonitor, HedgeParams, calculate_hedge, calculate_hedge_confidence
from arbwatch.storage.audit import AuditLog
from arbwatch.storage.memory import InMemoryStorage
from tests.conftest import EVENT_ID, MONEYLINE_ID, T0, FakeClock, make_event, make_quote


def make_bet(**overrides) -> UserBet:
    fields = dict(
        event_id=EVENT_ID,
        market_id=MONEYLINE_ID,
        sportsbook="draftkings",
        outcome_id="celtics",
        stake=100.0,
        price_at_bet=2.20,
        is_tracked=True,
    )
    fields.update(overrides)
    return UserBet(**fields)


class TestCalculateHedge:

    def test_locks_profit_on_both_sides(self):
        bet = make_bet()
        suggestion = calculate_hedge(bet, [make_quote("fanduel", "lakers", 1.95)], now=T0)

        assert suggestion is not None
        assert suggestion.legs[0].stake == pytest.approx(112.82)
        assert suggestion.locked_profit_low == pytest.approx(7.18, abs=0.01)
        assert suggestion.locked_profit_high == pytest.approx(7.18, abs=0.01)
        assert suggestion.locked_profit_low <= suggestion.locked_profit_high
        assert suggestion.bet_id == bet.id

    def test_picks_best_opposing_price(self):
        quotes = [
            make_quote("fanduel", "lakers", 1.95),
            make_quote("betmgm", "lakers", 2.05),
        ]
        suggestion = calculate_hedge(make_bet(), quotes, now=T0)
        assert suggestion.legs[0].sportsbook == "betmgm"

    def test_ignores_quotes_on_bet_outcome(self):
        quotes = [make_quote("fanduel", "celtics", 5.0)]
        assert calculate_hedge(make_bet(), quotes, now=T0) is None

    def test_no_suggestion_without_profit(self):
        bet = make_bet(price_at_bet=1.80)
        assert calculate_hedge(bet, [make_quote("fanduel", "lakers", 1.95)], now=T0) is None

    def test_untracked_bet(self):
        bet = make_bet(is_tracked=False)
        assert calculate_hedge(bet, [make_quote("fanduel", "lakers", 1.95)], now=T0) is None

    def test_settled_bet(self):
        bet = make_bet(settlement=Settlement.WON)
        assert calculate_hedge(bet, [make_quote("fanduel", "lakers", 1.95)], now=T0) is None

    def test_other_market_quotes_ignored(self):
        quote = make_quote("fanduel", "lakers", 1.95, market_id="elsewhere:moneyline")
        assert calculate_hedge(make_bet(), [quote], now=T0) is None

    def test_expires_before_opportunity_window(self):
        suggestion = calculate_hedge(make_bet(), [make_quote("fanduel", "lakers", 1.95)], now=T0)
        assert suggestion.expires_at == T0 + timedelta(seconds=120)


class TestHedgeConfidence:

    def test_fresh_quote(self):
        quote = make_quote("fanduel", "lakers", 1.95)
        assert calculate_hedge_confidence(quote, T0, HedgeParams()) == 1.0

    def test_stale_quote_floors_at_base(self):
        quote = make_quote("fanduel", "lakers", 1.95)
        later = T0 + timedelta(minutes=10)
        assert calculate_hedge_confidence(quote, later, HedgeParams()) == 0.7

    def test_half_window(self):
        quote = make_quote("fanduel", "lakers", 1.95)
        later = T0 + timedelta(seconds=150)
        assert calculate_hedge_confidence(quote, later, HedgeParams()) == pytest.approx(0.85)


class TestHedgeMonitor:

    @pytest.fixture
    def storage(self):
        return InMemoryStorage()

    @pytest.fixture
    def monitor(self, storage):
        return HedgeMonitor(storage, AuditLog(storage), clock=FakeClock())

    def _seed(self, storage, bet: UserBet, event=None):
        async def seed():
            await storage.upsert_event(event or make_event())
            await storage.add_quotes([make_quote("fanduel", "lakers", 1.95)])
            await storage.create_user_bet(bet)
        asyncio.run(seed())

    def test_evaluate_persists_and_audits(self, storage, monitor):
        bet = make_bet()
        self._seed(storage, bet)

        suggestion = asyncio.run(monitor.evaluate_bet(bet.id))

        assert suggestion is not None
        stored = asyncio.run(storage.list_hedge_suggestions(bet.id))
        assert [s.id for s in stored] == [suggestion.id]
        actions = [e.action for e in asyncio.run(storage.list_audit_entries())]
        assert "hedge_suggestion_created" in actions

    def test_skips_started_event(self, storage, monitor):
        bet = make_bet()
        self._seed(storage, bet, make_event(start_time=T0 - timedelta(minutes=5)))
        assert asyncio.run(monitor.evaluate_bet(bet.id)) is None

    def test_skips_event_not_scheduled(self, storage, monitor):
        bet = make_bet()
        self._seed(storage, bet, make_event(status=EventStatus.FINAL))
        assert asyncio.run(monitor.evaluate_bet(bet.id)) is None

    def test_run_counts_suggestions(self, storage, monitor):
        tracked = make_bet()
        self._seed(storage, tracked)
        asyncio.run(storage.create_user_bet(make_bet(is_tracked=False)))

        metrics = asyncio.run(monitor.run())

        assert metrics == {"tracked_bets": 1, "suggestions": 1, "failures": 0}

    def test_active_alerts_drop_expired(self, storage):
        clock = FakeClock()
        monitor = HedgeMonitor(storage, AuditLog(storage), clock=clock)
        bet = make_bet()
        self._seed(storage, bet)
        asyncio.run(monitor.evaluate_bet(bet.id))

        assert len(asyncio.run(monitor.active_alerts())) == 1
        clock.advance(121)
        assert asyncio.run(monitor.active_alerts()) == []
