"""Tests for arbitrage math, stake sizing and the detector."""

from datetime import timedelta

import pytest

from arbwatch.core.errors import InvalidInput
from arbwatch.core.math import calculate_implied_probability, detect_arbitrage, select_best_quote
from arbwatch.core.sizing import calculate_stakes
from arbwatch.engine.arbitrage import DetectionParams, calculate_confidence, detect
from tests.conftest import T0, arbitrage_quotes, make_market, make_quote


class TestArbitrageMath:

    def test_implied_probability(self):
        assert calculate_implied_probability(2.0) == pytest.approx(0.5)

    def test_implied_probability_rejects_non_positive_edge(self):
        with pytest.raises(ValueError):
            calculate_implied_probability(1.0)

    def test_detects_sure_win(self):
        result = detect_arbitrage([2.15, 1.90])
        assert result.is_arbitrage
        assert result.implied_prob_sum == pytest.approx(0.99143, abs=1e-4)
        assert result.profit_pct == pytest.approx(0.864, abs=0.01)

    def test_no_arbitrage_when_sum_above_one(self):
        result = detect_arbitrage([1.91, 1.91])
        assert not result.is_arbitrage
        assert result.profit_pct == 0.0

    def test_safety_ceiling_rejects_thin_edge(self):
        assert not detect_arbitrage([2.15, 1.90], max_implied_sum=0.98).is_arbitrage
        assert detect_arbitrage([2.15, 1.90], max_implied_sum=0.995).is_arbitrage

    def test_best_quote_ties_go_to_newest(self):
        older = make_quote("draftkings", "celtics", 2.15, captured_at=T0)
        newer = make_quote("fanduel", "celtics", 2.15, captured_at=T0 + timedelta(seconds=5))
        assert select_best_quote([older, newer]).sportsbook == "fanduel"


class TestStakeSizing:

    def test_stakes_are_proportional_to_implied_probability(self):
        sizing = calculate_stakes([2.15, 1.90], 1000)
        assert sizing.stakes == [pytest.approx(469.14, abs=0.01), pytest.approx(530.86, abs=0.01)]
        assert sum(sizing.fractions) == pytest.approx(1.0)

    def test_payout_equal_on_every_leg(self):
        odds = [2.15, 1.90]
        sizing = calculate_stakes(odds, 1000)
        exact = [1000 * f for f in sizing.fractions]
        payouts = [s * o for s, o in zip(exact, odds)]
        assert payouts[0] == pytest.approx(payouts[1])
        for stake, price in zip(sizing.stakes, odds):
            assert stake * price - sum(sizing.stakes) == pytest.approx(sizing.guaranteed_profit, abs=0.02)

    def test_three_way_market(self):
        sizing = calculate_stakes([3.2, 3.6, 3.9], 500)
        assert sizing.total_stake == pytest.approx(500, abs=0.02)
        assert sizing.guaranteed_profit > 0


class TestDetect:

    def test_spec_example_moneyline(self):
        opp = detect(arbitrage_quotes(), 0.5, market=make_market(), now=T0, jurisdictions=["NJ"])

        assert opp is not None
        stakes = {(leg.sportsbook, leg.outcome_id): leg.stake for leg in opp.legs}
        assert stakes == {
            ("fanduel", "celtics"): pytest.approx(469.14, abs=0.01),
            ("betmgm", "lakers"): pytest.approx(530.86, abs=0.01),
        }
        assert opp.expected_profit_pct == pytest.approx(0.86, abs=0.01)
        assert opp.locked_profit == pytest.approx(8.64, abs=0.01)
        assert opp.total_implied < 1
        assert opp.jurisdictions == ("NJ",)
        assert opp.expires_at == T0 + timedelta(seconds=300)
        assert sum(leg.stake for leg in opp.legs) == pytest.approx(opp.notional_bankroll, abs=0.02)

    def test_profit_below_threshold(self):
        assert detect(arbitrage_quotes(), 1.0, market=make_market(), now=T0) is None

    def test_no_arbitrage_returns_none(self):
        quotes = [
            make_quote("draftkings", "celtics", 1.91),
            make_quote("fanduel", "lakers", 1.91),
        ]
        assert detect(quotes, 0.0, market=make_market(), now=T0) is None

    def test_missing_outcome_skips_market(self):
        quotes = [make_quote("fanduel", "celtics", 3.0), make_quote("draftkings", "celtics", 2.9)]
        assert detect(quotes, 0.0, market=make_market(), now=T0) is None

    def test_single_outcome_without_market(self):
        assert detect([make_quote("fanduel", "celtics", 3.0)], 0.0, now=T0) is None

    def test_three_way_requires_draw_price(self):
        market = make_market(outcomes=("home", "draw", "away"))
        quotes = [make_quote("fanduel", "home", 3.2), make_quote("draftkings", "away", 3.9)]
        assert detect(quotes, 0.0, market=market, now=T0) is None

        quotes.append(make_quote("betmgm", "draw", 3.6))
        opp = detect(quotes, 0.0, market=market, now=T0)
        assert opp is not None
        assert len(opp.legs) == 3

    def test_mixed_markets_rejected(self):
        quotes = [
            make_quote("fanduel", "celtics", 2.15),
            make_quote("betmgm", "lakers", 1.90, market_id="other:moneyline"),
        ]
        with pytest.raises(InvalidInput):
            detect(quotes, 0.0, now=T0)

    def test_empty_quotes(self):
        assert detect([], 0.0, now=T0) is None

    def test_custom_bankroll_and_window(self):
        params = DetectionParams(bankroll=250.0, validity_window_seconds=60)
        opp = detect(arbitrage_quotes(), 0.5, market=make_market(), params=params, now=T0)
        assert opp.notional_bankroll == 250.0
        assert opp.expires_at == T0 + timedelta(seconds=60)


class TestConfidence:

    def test_fresh_and_saturated_is_full(self):
        quotes = [make_quote("fanduel", "celtics", 2.0) for _ in range(5)]
        assert calculate_confidence(quotes, T0, DetectionParams()) == pytest.approx(1.0)

    def test_stale_quotes_earn_no_recency(self):
        quotes = [make_quote("fanduel", "celtics", 2.0) for _ in range(5)]
        later = T0 + timedelta(hours=2)
        assert calculate_confidence(quotes, later, DetectionParams()) == pytest.approx(0.4)

    def test_more_quotes_raise_confidence(self):
        params = DetectionParams()
        few = calculate_confidence(arbitrage_quotes()[:2], T0, params)
        more = calculate_confidence(arbitrage_quotes(), T0, params)
        assert more > few

    def test_always_within_bounds(self):
        quotes = arbitrage_quotes(T0 - timedelta(days=3))
        score = calculate_confidence(quotes, T0, DetectionParams())
        assert 0.0 <= score <= 1.0
