"""Jurisdiction → sportsbook eligibility.

A sportsbook may only be used when it is licensed in *every* selected
jurisdiction (AND semantics). The mapping is held as an immutable
snapshot; updates publish a new snapshot instead of mutating in place.
"""

import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping

import structlog

from ..utils.cache import Clock, TTLCache
from ..utils.time import utc_now
from .errors import InvalidInput, NoEligibleBookmakers

logger = structlog.get_logger()


_ALL_BOOKS = ("draftkings", "fanduel", "caesars", "betmgm", "betrivers", "pointsbet", "wynnbet")
_DK_FD = _ALL_BOOKS[:2]
_BIG_FOUR = _ALL_BOOKS[:4]
_BIG_FIVE = _ALL_BOOKS[:5]
_NO_WYNN = _ALL_BOOKS[:6]

# US states and the sportsbooks licensed there.
DEFAULT_STATE_MAP: dict[str, tuple[str, ...]] = {
    "AL": _BIG_FOUR, "AK": _DK_FD, "AZ": _ALL_BOOKS, "AR": _BIG_FIVE,
    "CA": _DK_FD, "CO": _ALL_BOOKS, "CT": _BIG_FIVE,
    "DE": ("draftkings", "fanduel", "betmgm", "betrivers"), "FL": _BIG_FOUR,
    "GA": _DK_FD, "HI": _DK_FD, "ID": _DK_FD,
    "IL": _ALL_BOOKS, "IN": _NO_WYNN, "IA": _BIG_FIVE, "KS": _BIG_FIVE,
    "KY": _BIG_FIVE, "LA": _BIG_FIVE, "ME": _BIG_FOUR, "MD": _BIG_FIVE,
    "MA": _BIG_FIVE + ("wynnbet",), "MI": _ALL_BOOKS, "MN": _BIG_FOUR,
    "MS": _BIG_FOUR, "MO": _BIG_FOUR, "MT": _DK_FD, "NE": _BIG_FOUR,
    "NV": _ALL_BOOKS, "NH": _BIG_FOUR, "NJ": _ALL_BOOKS, "NM": _DK_FD,
    "NY": _ALL_BOOKS, "NC": _BIG_FIVE, "ND": _DK_FD, "OH": _NO_WYNN,
    "OK": _DK_FD, "OR": _DK_FD, "PA": _ALL_BOOKS, "RI": _BIG_FOUR,
    "SC": _DK_FD, "SD": _DK_FD, "TN": _BIG_FIVE, "TX": _DK_FD,
    "UT": _DK_FD, "VT": _BIG_FOUR, "VA": _BIG_FIVE, "WA": _DK_FD,
    "WV": _BIG_FIVE, "WI": _DK_FD, "WY": _DK_FD,
}


def normalize_jurisdictions(jurisdictions: Iterable[str] | None) -> frozenset[str]:
    """Upper-case and strip jurisdiction codes. Blank codes are invalid input."""
    if jurisdictions is None:
        raise InvalidInput("Jurisdiction selection is mandatory - select at least one")
    if isinstance(jurisdictions, str):
        raise InvalidInput("Jurisdictions must be a collection of codes, not a string")

    codes = set()
    for code in jurisdictions:
        if not isinstance(code, str) or not code.strip():
            raise InvalidInput(f"Malformed jurisdiction code: {code!r}")
        codes.add(code.strip().upper())

    if not codes:
        raise InvalidInput("Jurisdiction selection is mandatory - select at least one")
    return frozenset(codes)


@dataclass(frozen=True)
class EligibilityMap:
    """Immutable jurisdiction → sportsbook mapping."""
    mapping: Mapping[str, frozenset[str]]
    version: int = 1

    @classmethod
    def from_dict(cls, raw: Mapping[str, Iterable[str]], version: int = 1) -> "EligibilityMap":
        cleaned: dict[str, frozenset[str]] = {}
        for code, books in raw.items():
            if not isinstance(code, str) or not code.strip():
                raise InvalidInput(f"Malformed jurisdiction code: {code!r}")
            cleaned[code.strip().upper()] = frozenset(b.strip().lower() for b in books if b.strip())
        return cls(mapping=MappingProxyType(cleaned), version=version)

    def bookmakers_in(self, jurisdiction: str) -> frozenset[str]:
        # Unknown codes have no licensed books.
        return self.mapping.get(jurisdiction, frozenset())

    def jurisdictions_for(self, sportsbook: str) -> frozenset[str]:
        """Reverse lookup: every jurisdiction where the sportsbook is licensed."""
        return frozenset(code for code, books in self.mapping.items() if sportsbook in books)

    def eligible_bookmakers(self, jurisdictions: Iterable[str]) -> frozenset[str]:
        """
        Sportsbooks licensed in every given jurisdiction.

        Progressive set intersection, starting from the first jurisdiction.
        Raises InvalidInput for an empty selection. An empty result means
        no legal coverage; callers must treat it as terminal.
        """
        codes = sorted(normalize_jurisdictions(jurisdictions))

        eligible = set(self.bookmakers_in(codes[0]))
        for code in codes[1:]:
            eligible &= self.bookmakers_in(code)
            if not eligible:
                break
        return frozenset(eligible)

    def to_dict(self) -> dict[str, list[str]]:
        return {code: sorted(books) for code, books in sorted(self.mapping.items())}

    @property
    def all_bookmakers(self) -> list[str]:
        books: set[str] = set()
        for values in self.mapping.values():
            books |= values
        return sorted(books)


class EligibilityRegistry:
    """
    Single owner of the eligibility mapping.

    Readers take a snapshot; writers publish a whole new snapshot, so a
    reader never observes a half-updated map. Intersection results are
    cached per jurisdiction set and dropped on publish.
    """

    def __init__(
        self,
        initial: EligibilityMap | None = None,
        cache_ttl_seconds: float = 300.0,
        clock: Clock = utc_now,
    ):
        self._snapshot = initial or EligibilityMap.from_dict(DEFAULT_STATE_MAP)
        self._lock = threading.Lock()
        self._cache = TTLCache(ttl_seconds=cache_ttl_seconds, clock=clock)

    def snapshot(self) -> EligibilityMap:
        return self._snapshot

    def publish(self, raw: Mapping[str, Iterable[str]]) -> EligibilityMap:
        """Replace the mapping with a new immutable snapshot."""
        with self._lock:
            new_snapshot = EligibilityMap.from_dict(raw, version=self._snapshot.version + 1)
            self._snapshot = new_snapshot
            self._cache.clear()

        logger.info(
            "eligibility_map_published",
            version=new_snapshot.version,
            jurisdictions=len(new_snapshot.mapping),
        )
        return new_snapshot

    def eligible_bookmakers(self, jurisdictions: Iterable[str]) -> frozenset[str]:
        codes = normalize_jurisdictions(jurisdictions)
        snapshot = self._snapshot
        key = (snapshot.version, codes)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = snapshot.eligible_bookmakers(codes)
        self._cache.set(key, result)
        return result

    def require_eligible_bookmakers(self, jurisdictions: Iterable[str]) -> frozenset[str]:
        """Like eligible_bookmakers, but an empty result raises NoEligibleBookmakers."""
        codes = normalize_jurisdictions(jurisdictions)
        eligible = self.eligible_bookmakers(codes)
        if not eligible:
            raise NoEligibleBookmakers(codes)
        return eligible
