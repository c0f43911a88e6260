"""Tests for The Odds API client: parsing, credit headers and partial failures."""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from arbwatch.core.errors import ProviderNotConfigured
from arbwatch.core.models import EventStatus
from arbwatch.ingestion.odds_api import (
    OddsApiClient,
    OddsQuery,
    merge_credit_usage,
    parse_credit_headers,
    parse_event,
)
from tests.conftest import T0, FakeClock

RAW_EVENT = {
    "id": "abc123",
    "sport_key": "basketball_nba",
    "sport_title": "NBA",
    "commence_time": "2026-03-01T20:00:00Z",
    "home_team": "Los Angeles Lakers",
    "away_team": "Boston Celtics",
    "bookmakers": [
        {
            "key": "fanduel",
            "title": "FanDuel",
            "markets": [
                {
                    "key": "h2h",
                    "outcomes": [
                        {"name": "Boston Celtics", "price": 2.15},
                        {"name": "Los Angeles Lakers", "price": 1.75},
                    ],
                },
                {
                    "key": "spreads",
                    "outcomes": [
                        {"name": "Boston Celtics", "price": 1.91, "point": 3.5},
                        {"name": "Los Angeles Lakers", "price": 1.91, "point": -3.5},
                    ],
                },
            ],
        },
        {
            "key": "williamhill_us",
            "title": "Caesars",
            "markets": [
                {
                    "key": "h2h",
                    "outcomes": [
                        {"name": "Boston Celtics", "price": 2.05},
                        {"name": "Los Angeles Lakers", "price": 1.90},
                    ],
                },
                {
                    "key": "totals",
                    "outcomes": [
                        {"name": "Over", "price": 1.95, "point": 221.5},
                        {"name": "Under", "price": 1.87, "point": 221.5},
                    ],
                },
            ],
        },
        {
            "key": "bovada",
            "title": "Bovada",
            "markets": [
                {
                    "key": "h2h",
                    "outcomes": [
                        {"name": "Boston Celtics", "price": 2.40},
                        {"name": "Los Angeles Lakers", "price": 1.60},
                    ],
                },
            ],
        },
    ],
}

HEADERS = {"x-requests-used": "12", "x-requests-remaining": "488", "x-requests-last": "6"}


class TestCreditHeaders:

    def test_parses_headers(self):
        usage = parse_credit_headers(HEADERS)
        assert (usage.used, usage.remaining, usage.cost) == (12, 488, 6)

    def test_missing_headers(self):
        usage = parse_credit_headers({})
        assert (usage.used, usage.remaining, usage.cost) == (0, None, 0)

    def test_garbage_header_is_ignored(self):
        assert parse_credit_headers({"x-requests-remaining": "n/a"}).remaining is None

    def test_merge_sums_cost_and_keeps_latest_counters(self):
        first = parse_credit_headers(HEADERS)
        second = parse_credit_headers({"x-requests-used": "18", "x-requests-remaining": "482", "x-requests-last": "6"})
        merged = merge_credit_usage(first, second)
        assert (merged.used, merged.remaining, merged.cost) == (18, 482, 12)


class TestParseEvent:

    def test_builds_event_markets_and_quotes(self):
        batch = parse_event(RAW_EVENT, T0)

        event = batch.event
        assert event.sport == "basketball"
        assert event.league == "NBA"
        assert event.status == EventStatus.SCHEDULED
        market_types = sorted(m.market_type for m in event.markets)
        assert market_types == ["moneyline", "spread", "total"]

        moneyline = next(m for m in event.markets if m.market_type == "moneyline")
        assert set(moneyline.outcome_ids) == {"boston_celtics", "los_angeles_lakers"}
        books = {q.sportsbook for q in batch.quotes if q.market_id == moneyline.market_id}
        assert books == {"fanduel", "caesars", "bovada"}

    def test_spread_keyed_on_home_line(self):
        batch = parse_event(RAW_EVENT, T0)
        spread = next(m for m in batch.event.markets if m.market_type == "spread")
        assert spread.market_id.endswith(":spread:-3.5")
        assert set(spread.outcome_ids) == {"boston_celtics_3.5", "los_angeles_lakers_-3.5"}

    def test_bookmaker_filter(self):
        batch = parse_event(RAW_EVENT, T0, bookmakers=frozenset({"fanduel", "caesars"}))
        assert {q.sportsbook for q in batch.quotes} == {"fanduel", "caesars"}

    def test_in_play_event(self):
        batch = parse_event(RAW_EVENT, T0.replace(hour=21))
        assert batch.event.status == EventStatus.LIVE
        assert all(q.is_live for q in batch.quotes)

    def test_missing_fields(self):
        assert parse_event({"id": "x", "sport_key": "basketball_nba"}, T0) is None

    def test_drops_invalid_prices(self):
        raw = dict(RAW_EVENT, bookmakers=[{
            "key": "fanduel",
            "markets": [{"key": "h2h", "outcomes": [
                {"name": "Boston Celtics", "price": 1.0},
                {"name": "Los Angeles Lakers", "price": 1.9},
            ]}],
        }])
        assert parse_event(raw, T0) is None

    def test_american_prices(self):
        raw = dict(RAW_EVENT, bookmakers=[{
            "key": "fanduel",
            "markets": [{"key": "h2h", "outcomes": [
                {"name": "Boston Celtics", "price": 110},
                {"name": "Los Angeles Lakers", "price": -125},
            ]}],
        }])
        batch = parse_event(raw, T0, price_format="american")
        assert sorted(q.price for q in batch.quotes) == [1.8, 2.1]


def run_against_server(handler, query: OddsQuery, timeout_seconds: float = 5.0):
    async def scenario():
        app = web.Application()
        app.router.add_get("/v4/sports/{sport}/odds", handler)
        server = TestServer(app)
        await server.start_server()
        client = OddsApiClient(
            "test-key",
            base_url=str(server.make_url("/v4")),
            timeout_seconds=timeout_seconds,
            clock=FakeClock(),
        )
        try:
            return await client.fetch(query)
        finally:
            await client.close()
            await server.close()

    return asyncio.run(scenario())


class TestOddsApiClient:

    def test_requires_api_key(self):
        client = OddsApiClient("")
        with pytest.raises(ProviderNotConfigured):
            asyncio.run(client.fetch(OddsQuery(sports=("basketball_nba",))))

    def test_fetch_sends_parameters_and_reads_headers(self):
        seen = {}

        async def handler(request):
            seen.update(request.query)
            return web.json_response([RAW_EVENT], headers=HEADERS)

        result = run_against_server(handler, OddsQuery(
            sports=("basketball_nba",), regions=("us", "us2"), markets=("h2h", "spreads"),
        ))

        assert seen["regions"] == "us,us2"
        assert seen["markets"] == "h2h,spreads"
        assert seen["oddsFormat"] == "decimal"
        assert seen["apiKey"] == "test-key"
        assert result.credit_usage.remaining == 488
        assert result.credit_usage.cost == 6
        assert len(result.batches) == 1
        assert result.failures == []

    def test_partial_failure_keeps_other_sports(self):
        async def handler(request):
            if request.match_info["sport"] == "icehockey_nhl":
                return web.Response(status=500, text="boom")
            return web.json_response([RAW_EVENT], headers=HEADERS)

        result = run_against_server(handler, OddsQuery(sports=("basketball_nba", "icehockey_nhl")))

        assert len(result.batches) == 1
        assert [(f.sport, f.kind) for f in result.failures] == [("icehockey_nhl", "unavailable")]
        assert not result.all_failed

    def test_error_response_still_reports_credits(self):
        async def handler(request):
            return web.Response(
                status=429,
                text="quota exceeded",
                headers={"x-requests-used": "500", "x-requests-remaining": "0", "x-requests-last": "0"},
            )

        result = run_against_server(handler, OddsQuery(sports=("basketball_nba",)))

        assert result.all_failed
        assert result.credit_usage.used == 500
        assert result.credit_usage.remaining == 0

    def test_timeout_is_recorded(self):
        async def handler(request):
            await asyncio.sleep(1.0)
            return web.json_response([])

        result = run_against_server(handler, OddsQuery(sports=("basketball_nba",)), timeout_seconds=0.1)

        assert result.failures[0].kind == "timeout"
        assert result.all_failed

    def test_live_only_filters_upcoming_events(self):
        async def handler(request):
            return web.json_response([RAW_EVENT], headers=HEADERS)

        result = run_against_server(handler, OddsQuery(sports=("basketball_nba",), live_only=True))

        assert result.batches == []
