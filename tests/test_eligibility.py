"""Tests for jurisdiction eligibility filtering."""

import pytest

from arbwatch.core.eligibility import (
    DEFAULT_STATE_MAP,
    EligibilityMap,
    EligibilityRegistry,
    normalize_jurisdictions,
)
from arbwatch.core.errors import InvalidInput, NoEligibleBookmakers
from tests.conftest import FakeClock


@pytest.fixture
def small_map():
    return EligibilityMap.from_dict({
        "NJ": ["draftkings", "fanduel", "betmgm"],
        "NY": ["draftkings", "fanduel"],
        "TX": [],
    })


class TestNormalizeJurisdictions:

    def test_uppercases_and_dedupes(self):
        assert normalize_jurisdictions([" nj", "NJ", "ny "]) == frozenset({"NJ", "NY"})

    def test_empty_selection_is_invalid(self):
        with pytest.raises(InvalidInput):
            normalize_jurisdictions([])

    def test_none_is_invalid(self):
        with pytest.raises(InvalidInput):
            normalize_jurisdictions(None)

    def test_bare_string_is_invalid(self):
        with pytest.raises(InvalidInput):
            normalize_jurisdictions("NJ")

    def test_blank_code_is_invalid(self):
        with pytest.raises(InvalidInput):
            normalize_jurisdictions(["NJ", "  "])


class TestEligibilityMap:

    def test_single_jurisdiction(self, small_map):
        assert small_map.eligible_bookmakers(["NJ"]) == {"draftkings", "fanduel", "betmgm"}

    def test_intersection_uses_and_semantics(self, small_map):
        assert small_map.eligible_bookmakers(["NJ", "NY"]) == {"draftkings", "fanduel"}

    def test_result_is_subset_of_every_jurisdiction(self):
        state_map = EligibilityMap.from_dict(DEFAULT_STATE_MAP)
        codes = ["NJ", "DE", "MA"]
        eligible = state_map.eligible_bookmakers(codes)
        for code in codes:
            assert eligible <= state_map.bookmakers_in(code)

    def test_unknown_code_has_no_books(self, small_map):
        assert small_map.eligible_bookmakers(["NJ", "ZZ"]) == frozenset()

    def test_empty_intersection(self, small_map):
        assert small_map.eligible_bookmakers(["NJ", "TX"]) == frozenset()

    def test_reverse_lookup(self, small_map):
        assert small_map.jurisdictions_for("betmgm") == {"NJ"}
        assert small_map.jurisdictions_for("draftkings") == {"NJ", "NY"}

    def test_mapping_is_read_only(self, small_map):
        with pytest.raises(TypeError):
            small_map.mapping["CA"] = frozenset({"fanduel"})

    def test_default_map_delaware(self):
        state_map = EligibilityMap.from_dict(DEFAULT_STATE_MAP)
        assert state_map.bookmakers_in("DE") == {"draftkings", "fanduel", "betmgm", "betrivers"}


class TestEligibilityRegistry:

    def test_publish_bumps_version_and_replaces_snapshot(self):
        registry = EligibilityRegistry()
        before = registry.snapshot()

        after = registry.publish({"NJ": ["fanduel"]})

        assert after.version == before.version + 1
        assert registry.eligible_bookmakers(["NJ"]) == {"fanduel"}
        # Old snapshot is untouched
        assert "draftkings" in before.bookmakers_in("NJ")

    def test_publish_invalidates_cached_intersection(self):
        registry = EligibilityRegistry()
        assert "draftkings" in registry.eligible_bookmakers(["NJ"])

        registry.publish({"NJ": ["fanduel"]})

        assert registry.eligible_bookmakers(["NJ"]) == {"fanduel"}

    def test_cache_expires(self):
        clock = FakeClock()
        registry = EligibilityRegistry(cache_ttl_seconds=60, clock=clock)
        registry.eligible_bookmakers(["NJ"])
        assert len(registry._cache) == 1

        clock.advance(61)
        assert registry._cache.cleanup_expired() == 1

    def test_require_raises_on_empty_result(self):
        registry = EligibilityRegistry(EligibilityMap.from_dict({"NJ": ["fanduel"], "NY": ["draftkings"]}))
        with pytest.raises(NoEligibleBookmakers) as exc_info:
            registry.require_eligible_bookmakers(["nj", "ny"])
        assert exc_info.value.jurisdictions == ["NJ", "NY"]

    def test_require_rejects_empty_selection(self):
        with pytest.raises(InvalidInput):
            EligibilityRegistry().require_eligible_bookmakers([])
