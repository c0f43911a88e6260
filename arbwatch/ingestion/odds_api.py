"""The Odds API v4 client (read-only, public odds data).

One GET /sports/{sport}/odds per sport. Credit usage is taken from the
provider's response headers:

    x-requests-used       cumulative credits used this billing period
    x-requests-remaining  credits left this billing period
    x-requests-last       cost of this request

IMPORTANT: This is advisory-only. No betting, no accounts.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping

import aiohttp
import structlog

from ..config import Settings
from ..core.errors import ProviderNotConfigured, ProviderTimeout, ProviderUnavailable
from ..core.models import (
    CreditUsage,
    Event,
    EventStatus,
    Market,
    MarketOutcome,
    ProviderResult,
    Quote,
    QuoteBatch,
    SportFailure,
)
from ..core.normalization import (
    event_id as make_event_id,
    market_id as make_market_id,
    normalize_market_type,
    normalize_sportsbook,
    outcome_id as make_outcome_id,
)
from ..utils.cache import Clock
from ..utils.odds import normalize_price
from ..utils.time import utc_now

logger = structlog.get_logger()


@dataclass(frozen=True)
class OddsQuery:
    """One provider fetch: a request per sport, shared regions and markets."""
    sports: tuple[str, ...]
    regions: tuple[str, ...] = ("us",)
    markets: tuple[str, ...] = ("h2h",)
    bookmakers: frozenset[str] | None = None
    live_only: bool = False


class OddsProvider(ABC):
    """Anything that can turn an OddsQuery into normalized quote batches."""

    @abstractmethod
    async def fetch(self, query: OddsQuery) -> ProviderResult:
        ...

    async def close(self) -> None:
        return None


def _header_int(headers: Mapping[str, str], name: str) -> int | None:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(float(value))
    except ValueError:
        logger.warning("odds_api_bad_header", header=name, value=value)
        return None


def parse_credit_headers(headers: Mapping[str, str]) -> CreditUsage:
    """Credit counters from a single response's headers."""
    return CreditUsage(
        used=_header_int(headers, "x-requests-used") or 0,
        remaining=_header_int(headers, "x-requests-remaining"),
        cost=_header_int(headers, "x-requests-last") or 0,
    )


def merge_credit_usage(total: CreditUsage, latest: CreditUsage) -> CreditUsage:
    """Fold one response's counters into a running total.

    Cumulative counters come from the most recent response; per-request
    cost is summed.
    """
    return CreditUsage(
        used=max(total.used, latest.used),
        remaining=latest.remaining if latest.remaining is not None else total.remaining,
        cost=total.cost + latest.cost,
    )


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class _MarketDraft:
    market_type: str
    outcomes: dict[str, str] = field(default_factory=dict)  # id -> label


def _market_key(
    event_key: str,
    market_type: str,
    raw_outcomes: list[dict],
    home_team: str,
) -> str | None:
    """
    Market id for one sportsbook's market.

    Spreads key on the home team's line, totals on the Over line, so only
    prices on the same proposition share a market.
    """
    if market_type == "moneyline":
        return make_market_id(event_key, market_type)

    if market_type == "spread":
        for outcome in raw_outcomes:
            if outcome.get("name") == home_team and outcome.get("point") is not None:
                return make_market_id(event_key, market_type, float(outcome["point"]))
        return None

    if market_type == "total":
        for outcome in raw_outcomes:
            if str(outcome.get("name", "")).lower() == "over" and outcome.get("point") is not None:
                return make_market_id(event_key, market_type, float(outcome["point"]))
        return None

    return None


def _outcome_label(name: str, market_type: str, point) -> str:
    if point is None:
        return name
    if market_type == "spread":
        return f"{name} {float(point):+g}"
    return f"{name} {float(point):g}"


def parse_event(
    raw: dict,
    captured_at: datetime,
    bookmakers: frozenset[str] | None = None,
    price_format: str = "decimal",
) -> QuoteBatch | None:
    """
    Parse one provider event into an Event with its markets and quotes.

    Books outside `bookmakers` (when given) are dropped. Prices are
    converted from `price_format` to decimal odds. Returns None for
    events missing required fields or without a usable market.
    """
    provider_id = raw.get("id")
    sport_key = raw.get("sport_key") or ""
    start_time = parse_timestamp(raw.get("commence_time"))
    if not provider_id or not sport_key or start_time is None:
        logger.debug("odds_api_event_skipped", provider_id=provider_id, sport=sport_key)
        return None

    home_team = raw.get("home_team", "")
    away_team = raw.get("away_team", "")
    key = make_event_id(provider_id)
    is_live = start_time <= captured_at

    drafts: dict[str, _MarketDraft] = {}
    quotes: list[Quote] = []

    for book in raw.get("bookmakers", []):
        sportsbook = normalize_sportsbook(book.get("key", ""))
        if not sportsbook:
            continue
        if bookmakers is not None and sportsbook not in bookmakers:
            continue

        for mkt in book.get("markets", []):
            market_type = normalize_market_type(mkt.get("key", ""))
            raw_outcomes = mkt.get("outcomes", [])
            market_key = _market_key(key, market_type, raw_outcomes, home_team)
            if market_key is None:
                continue

            draft = drafts.setdefault(market_key, _MarketDraft(market_type))
            for outcome in raw_outcomes:
                name = outcome.get("name", "")
                if not name or outcome.get("price") is None:
                    continue
                try:
                    price = normalize_price(outcome["price"], price_format)
                except (TypeError, ValueError):
                    continue
                if price <= 1.0:
                    continue

                point = outcome.get("point") if market_type != "moneyline" else None
                oid = make_outcome_id(name, float(point) if point is not None else None)
                label = _outcome_label(name, market_type, point)
                draft.outcomes.setdefault(oid, label)

                quotes.append(Quote(
                    market_id=market_key,
                    sportsbook=sportsbook,
                    outcome_id=oid,
                    price=round(float(price), 4),
                    is_live=is_live,
                    captured_at=captured_at,
                ))

    markets = tuple(
        Market(
            market_id=market_key,
            event_id=key,
            market_type=draft.market_type,
            outcomes=tuple(MarketOutcome(id=oid, label=label) for oid, label in draft.outcomes.items()),
        )
        for market_key, draft in drafts.items()
        if len(draft.outcomes) >= 2
    )
    if not markets:
        return None

    valid_ids = {m.market_id for m in markets}
    event = Event(
        event_id=key,
        sport=sport_key.split("_")[0],
        league=raw.get("sport_title") or sport_key,
        home_team=home_team,
        away_team=away_team,
        start_time=start_time,
        status=EventStatus.LIVE if is_live else EventStatus.SCHEDULED,
        markets=markets,
    )
    return QuoteBatch(event=event, quotes=[q for q in quotes if q.market_id in valid_ids])


class OddsApiClient(OddsProvider):
    """
    Client for The Odds API.

    A failing sport is recorded and the remaining sports are still
    fetched. There is no mock-data fallback.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.the-odds-api.com/v4",
        timeout_seconds: float = 15.0,
        odds_format: str = "decimal",
        clock: Clock = utc_now,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.odds_format = odds_format
        self._clock = clock
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_odds(self, sport: str, query: OddsQuery) -> tuple[list[dict], CreditUsage]:
        session = await self._get_session()
        url = f"{self.base_url}/sports/{sport}/odds"
        params = {
            "apiKey": self.api_key,
            "regions": ",".join(query.regions),
            "markets": ",".join(query.markets),
            "oddsFormat": self.odds_format,
            "dateFormat": "iso",
        }

        try:
            async with session.get(url, params=params) as resp:
                usage = parse_credit_headers(resp.headers)
                if resp.status != 200:
                    body = await resp.text()
                    raise ProviderUnavailable(
                        f"Odds API returned {resp.status}: {body[:200]}", sport=sport, usage=usage
                    )
                data = await resp.json()
        except asyncio.TimeoutError as exc:
            raise ProviderTimeout(f"Odds API timed out for {sport}", sport=sport) from exc
        except aiohttp.ClientError as exc:
            raise ProviderUnavailable(f"Odds API request failed: {exc}", sport=sport) from exc

        if not isinstance(data, list):
            raise ProviderUnavailable(
                "Odds API returned an unexpected payload", sport=sport, usage=usage
            )
        return data, usage

    async def fetch(self, query: OddsQuery) -> ProviderResult:
        """Fetch and normalize odds for every sport in the query."""
        if not self.api_key:
            raise ProviderNotConfigured("ARBWATCH_ODDS_API_KEY is not set")

        result = ProviderResult(sports_requested=len(query.sports))
        usage = CreditUsage()

        for sport in query.sports:
            try:
                raw_events, sport_usage = await self._get_odds(sport, query)
            except ProviderTimeout as exc:
                logger.warning("odds_api_timeout", sport=sport)
                result.failures.append(SportFailure(sport=sport, error=str(exc), kind="timeout"))
                continue
            except ProviderUnavailable as exc:
                logger.warning("odds_api_unavailable", sport=sport, error=str(exc))
                result.failures.append(SportFailure(sport=sport, error=str(exc), kind="unavailable"))
                if exc.usage is not None:
                    usage = merge_credit_usage(usage, exc.usage)
                continue

            usage = merge_credit_usage(usage, sport_usage)
            captured_at = self._clock()
            for raw in raw_events:
                batch = parse_event(raw, captured_at, query.bookmakers, self.odds_format)
                if batch is None:
                    continue
                if query.live_only and batch.event.status != EventStatus.LIVE:
                    continue
                result.batches.append(batch)

            logger.info(
                "odds_api_sport_fetched",
                sport=sport,
                events=len(raw_events),
                cost=sport_usage.cost,
                remaining=sport_usage.remaining,
            )

        result.credit_usage = usage
        return result


def client_from_settings(settings: Settings) -> OddsApiClient:
    return OddsApiClient(
        api_key=settings.odds_api_key,
        base_url=settings.odds_api_base_url,
        timeout_seconds=settings.request_timeout_seconds,
        odds_format=settings.odds_format,
    )
