"""Arbitrage scan orchestrator.

Coordinates the paid scan path (estimate, confirm, fetch, detect, rank,
persist) and the scheduled indexer that re-evaluates stored quotes
without touching the provider.
"""

import asyncio
from datetime import datetime
from typing import Iterable

import structlog
from pydantic import BaseModel, Field

from ..config import Settings
from ..core.eligibility import EligibilityRegistry, normalize_jurisdictions
from ..core.errors import JobAlreadyRunning, ScanNotConfirmed
from ..core.filters import ScanFilters
from ..core.models import (
    ArbitrageOpportunity,
    CreditUsage,
    JobRun,
    JobStatus,
    SportFailure,
)
from ..ingestion.service import IngestionService
from ..storage.audit import AuditLog
from ..storage.base import Storage
from ..utils.cache import Clock
from ..utils.time import Timer, after, utc_now
from .arbitrage import DetectionParams, detect
from .estimator import UsageEstimate, estimate_usage
from .ranker import OpportunityRanker, rank

logger = structlog.get_logger()

SCAN_JOB_NAME = "arbitrage_scan"


class ScanOutcome(BaseModel):
    opportunities: list[ArbitrageOpportunity]
    max_profit_pick: ArbitrageOpportunity | None = None
    total_found: int = 0
    markets_evaluated: int = 0
    evaluation_failures: int = 0
    credit_usage: CreditUsage = Field(default_factory=CreditUsage)
    failures: list[SportFailure] = Field(default_factory=list)
    cache_expires_at: datetime
    jurisdictions: list[str] = Field(default_factory=list)
    eligible_bookmakers: list[str] = Field(default_factory=list)
    scan_duration_ms: float = 0.0
    job_run_id: str | None = None


class _Evaluation(BaseModel):
    opportunities: list[ArbitrageOpportunity] = Field(default_factory=list)
    markets_evaluated: int = 0
    failures: int = 0


class ArbitrageService:
    """
    Estimate, scan and recompute arbitrage opportunities.

    A scan never starts without explicit confirmation, and jurisdiction
    problems surface before any provider call.
    """

    def __init__(
        self,
        storage: Storage,
        registry: EligibilityRegistry,
        ingestion: IngestionService,
        audit: AuditLog,
        settings: Settings,
        clock: Clock = utc_now,
    ):
        self._storage = storage
        self._registry = registry
        self._ingestion = ingestion
        self._audit = audit
        self._settings = settings
        self._params = DetectionParams.from_settings(settings)
        self._ranker = OpportunityRanker(storage)
        self._clock = clock
        self._scan_lock = asyncio.Lock()

    def estimate(self, filters: ScanFilters) -> UsageEstimate:
        """Plan a scan. Makes no provider call and writes nothing."""
        return estimate_usage(filters, self._registry, self._settings.default_sports)

    async def _evaluate(
        self,
        market_ids: Iterable[str],
        jurisdictions: frozenset[str],
        eligible: frozenset[str],
        min_profit_pct: float,
        now: datetime,
    ) -> _Evaluation:
        """Run the detector over each market. A failing market is logged and skipped."""
        evaluation = _Evaluation()
        since = after(now, -self._settings.quote_max_age_seconds)

        for market_id in dict.fromkeys(market_ids):
            try:
                market = await self._storage.get_market(market_id)
                if market is None:
                    continue
                quotes = [
                    q for q in await self._storage.latest_quotes(market_id, since=since)
                    if q.sportsbook in eligible
                ]
                evaluation.markets_evaluated += 1
                opportunity = detect(
                    quotes,
                    min_profit_pct,
                    market=market,
                    params=self._params,
                    jurisdictions=jurisdictions,
                    now=now,
                )
            except Exception:
                evaluation.failures += 1
                logger.exception("market_evaluation_failed", market_id=market_id)
                continue

            if opportunity is not None:
                evaluation.opportunities.append(opportunity)

        return evaluation

    async def scan(
        self,
        filters: ScanFilters,
        confirmed: bool,
        actor: str = "anonymous",
    ) -> ScanOutcome:
        """
        Run a confirmed, paid scan.

        Raises ScanNotConfirmed without confirmation, InvalidInput for an
        empty jurisdiction selection and NoEligibleBookmakers when no book
        is licensed everywhere selected. None of these spend credits.
        Raises JobAlreadyRunning while another scan is in flight.
        """
        if not confirmed:
            raise ScanNotConfirmed("Scan requires explicit confirmation of the estimated credit usage")

        jurisdictions = normalize_jurisdictions(filters.jurisdictions)
        eligible = self._registry.require_eligible_bookmakers(jurisdictions)

        # No await between the check and the acquire.
        if self._scan_lock.locked():
            raise JobAlreadyRunning("An arbitrage scan is already running")
        async with self._scan_lock:
            return await self._run_scan(filters, jurisdictions, eligible, actor)

    async def _run_scan(
        self,
        filters: ScanFilters,
        jurisdictions: frozenset[str],
        eligible: frozenset[str],
        actor: str,
    ) -> ScanOutcome:
        timer = Timer().start()
        run = await self._storage.create_job_run(JobRun(
            job_name=SCAN_JOB_NAME,
            trigger="manual",
            started_at=self._clock(),
        ))
        logger.info(
            "arbitrage_scan_started",
            actor=actor,
            jurisdictions=sorted(jurisdictions),
            eligible_bookmakers=len(eligible),
        )

        try:
            ingestion = await self._ingestion.ingest(filters, actor=actor, operation=SCAN_JOB_NAME)
            now = self._clock()
            evaluation = await self._evaluate(
                ingestion.market_ids, jurisdictions, eligible, filters.min_profit_pct, now
            )
            ranked = await self._ranker.publish(evaluation.opportunities)
        except Exception as exc:
            timer.stop()
            await self._storage.update_job_run(
                run.id,
                status=JobStatus.FAILED,
                finished_at=self._clock(),
                error_summary=str(exc),
            )
            logger.warning("arbitrage_scan_failed", error=str(exc), error_type=type(exc).__name__)
            raise

        timer.stop()
        top = ranked[: self._settings.scan_result_limit]
        cache_expires_at = (
            min(o.expires_at for o in ranked)
            if ranked
            else after(now, self._settings.opportunity_validity_seconds)
        )

        metrics = {
            "events": len(ingestion.events),
            "quotes": ingestion.quotes_stored,
            "markets_evaluated": evaluation.markets_evaluated,
            "evaluation_failures": evaluation.failures,
            "opportunities": len(ranked),
            "credits_used": ingestion.credit_usage.cost,
            "failed_sports": [f.sport for f in ingestion.failures],
            "duration_ms": round(timer.elapsed_ms, 1),
        }
        await self._storage.update_job_run(
            run.id,
            status=JobStatus.SUCCESS,
            finished_at=self._clock(),
            metrics=metrics,
        )
        await self._audit.record(actor, "arbitrage_scan_completed", f"job_run:{run.id}", metrics)

        logger.info("arbitrage_scan_completed", **metrics)

        return ScanOutcome(
            opportunities=top,
            max_profit_pick=ranked[0] if ranked else None,
            total_found=len(ranked),
            markets_evaluated=evaluation.markets_evaluated,
            evaluation_failures=evaluation.failures,
            credit_usage=ingestion.credit_usage,
            failures=ingestion.failures,
            cache_expires_at=cache_expires_at,
            jurisdictions=sorted(jurisdictions),
            eligible_bookmakers=sorted(eligible),
            scan_duration_ms=timer.elapsed_ms,
            job_run_id=run.id,
        )

    async def recompute(
        self,
        jurisdictions: Iterable[str],
        min_profit_pct: float | None = None,
    ) -> dict:
        """Re-evaluate stored quotes for every known market. No provider call."""
        codes = normalize_jurisdictions(jurisdictions)
        eligible = self._registry.require_eligible_bookmakers(codes)
        threshold = self._settings.min_profit_pct if min_profit_pct is None else min_profit_pct

        now = self._clock()
        markets = await self._storage.list_markets()
        evaluation = await self._evaluate(
            (m.market_id for m in markets), codes, eligible, threshold, now
        )
        ranked = await self._ranker.publish(evaluation.opportunities)

        return {
            "markets_evaluated": evaluation.markets_evaluated,
            "evaluation_failures": evaluation.failures,
            "opportunities": len(ranked),
            "top_locked_profit": ranked[0].locked_profit if ranked else None,
        }

    async def active_opportunities(self, limit: int | None = None) -> list[ArbitrageOpportunity]:
        """Unexpired opportunities, best first."""
        active = rank(await self._storage.list_opportunities(active_at=self._clock()))
        return active[:limit] if limit else active
