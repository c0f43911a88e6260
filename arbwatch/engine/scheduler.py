"""Background job scheduler.

Each job runs on its own asyncio task. At most one run of a given job is
in flight at a time: a scheduled tick that finds the previous run still
going is recorded as skipped, a manual trigger is refused.

Jobs that spend provider credits obey the budget policy:
    SKIP      - skip scheduled runs while the budget is low
    THROTTLE  - stretch the polling interval while the budget is low
    IGNORE    - keep polling
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Literal

import structlog

from ..config import BudgetPolicy, Settings
from ..core.errors import BudgetExhausted, JobAlreadyRunning, UnknownJob
from ..core.filters import ScanFilters
from ..core.flags import AGGRESSIVE_POLLING, LIVE_HEDGING, FeatureFlags
from ..core.models import JobRun, JobStatus
from ..ingestion.service import IngestionService
from ..storage.audit import AuditLog
from ..storage.base import Storage
from ..utils.cache import Clock
from ..utils.time import after, utc_now
from .budget import CreditBudget
from .hedge import HedgeMonitor
from .scanner import ArbitrageService

logger = structlog.get_logger()

Trigger = Literal["schedule", "manual"]


@dataclass
class Job:
    name: str
    interval_seconds: float
    action: Callable[[], Awaitable[dict]]
    description: str = ""
    uses_credits: bool = False
    flag: str | None = None  # Job only runs while this feature flag is on


class JobScheduler:
    """Runs registered jobs periodically and on demand, recording every run."""

    def __init__(
        self,
        storage: Storage,
        flags: FeatureFlags,
        budget: CreditBudget,
        audit: AuditLog,
        throttle_factor: float = 3.0,
        clock: Clock = utc_now,
    ):
        self._storage = storage
        self._audit = audit
        self._flags = flags
        self._budget = budget
        self._throttle_factor = throttle_factor
        self._clock = clock
        self._jobs: dict[str, Job] = {}
        self._active: set[str] = set()  # names of jobs with a run in flight
        self._tasks: list[asyncio.Task] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def jobs(self) -> list[Job]:
        return list(self._jobs.values())

    def register(self, job: Job) -> None:
        self._jobs[job.name] = job

    def get_job(self, name: str) -> Job:
        job = self._jobs.get(name)
        if job is None:
            raise UnknownJob(f"Unknown job: {name}")
        return job

    async def _record_skip(self, job: Job, trigger: Trigger, reason: str) -> JobRun:
        now = self._clock()
        logger.info("job_skipped", job=job.name, trigger=trigger, reason=reason)
        return await self._storage.create_job_run(JobRun(
            job_name=job.name,
            status=JobStatus.SKIPPED,
            trigger=trigger,
            started_at=now,
            finished_at=now,
            error_summary=reason,
        ))

    async def _skip_reason(self, job: Job, trigger: Trigger) -> str | None:
        if job.flag is not None and not await self._flags.is_enabled(job.flag):
            return f"Feature flag '{job.flag}' is disabled"
        if (
            trigger == "schedule"
            and job.uses_credits
            and self._budget.policy == BudgetPolicy.SKIP
            and self._budget.is_low
        ):
            return "Credit budget low"
        return None

    async def run_job(self, name: str, trigger: Trigger = "manual", actor: str = "system") -> JobRun:
        """
        Run one job now and return its recorded run.

        Raises UnknownJob for an unregistered name and JobAlreadyRunning
        when a manual trigger overlaps a run in progress. Failures inside
        the job are recorded on the run, not raised.
        """
        job = self.get_job(name)

        # Check and claim in one step: no await between them.
        if name in self._active:
            if trigger == "manual":
                raise JobAlreadyRunning(f"Job {name} is already running")
            return await self._record_skip(job, trigger, "Previous run still in progress")
        self._active.add(name)

        try:
            if trigger == "manual":
                await self._audit.record(actor, "job_triggered", f"job:{name}", {"job": name})

            reason = await self._skip_reason(job, trigger)
            if reason is not None:
                return await self._record_skip(job, trigger, reason)

            return await self._execute(job, trigger)
        finally:
            self._active.discard(name)

    async def _execute(self, job: Job, trigger: Trigger) -> JobRun:
        name = job.name
        run = await self._storage.create_job_run(JobRun(
            job_name=name,
            status=JobStatus.RUNNING,
            trigger=trigger,
            started_at=self._clock(),
        ))
        logger.info("job_started", job=name, trigger=trigger, run_id=run.id)

        try:
            metrics = await job.action()
        except BudgetExhausted as exc:
            logger.warning("job_budget_exhausted", job=name, error=str(exc))
            return await self._storage.update_job_run(
                run.id,
                status=JobStatus.SKIPPED,
                finished_at=self._clock(),
                error_summary=str(exc),
            )
        except Exception as exc:
            logger.exception("job_failed", job=name, run_id=run.id)
            return await self._storage.update_job_run(
                run.id,
                status=JobStatus.FAILED,
                finished_at=self._clock(),
                error_summary=f"{type(exc).__name__}: {exc}",
            )

        finished = await self._storage.update_job_run(
            run.id,
            status=JobStatus.SUCCESS,
            finished_at=self._clock(),
            metrics=metrics or {},
        )
        logger.info("job_completed", job=name, run_id=run.id, **(metrics or {}))
        return finished

    def next_interval(self, job: Job) -> float:
        if (
            job.uses_credits
            and self._budget.policy == BudgetPolicy.THROTTLE
            and self._budget.is_low
        ):
            return job.interval_seconds * self._throttle_factor
        return job.interval_seconds

    async def _loop(self, job: Job) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.next_interval(job))
                await self.run_job(job.name, trigger="schedule")
            except asyncio.CancelledError:
                logger.info("job_loop_cancelled", job=job.name)
                break
            except Exception:
                logger.exception("job_loop_error", job=job.name)

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        for job in self._jobs.values():
            self._tasks.append(asyncio.create_task(self._loop(job), name=job.name))
        logger.info("scheduler_started", jobs=sorted(self._jobs))

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("scheduler_stopped")

    async def statuses(self) -> list[dict]:
        """Current state of every job with its most recent run."""
        result = []
        for job in self._jobs.values():
            runs = await self._storage.list_job_runs(job.name)
            last = runs[0] if runs else None
            result.append({
                "name": job.name,
                "description": job.description,
                "interval_seconds": job.interval_seconds,
                "next_interval_seconds": self.next_interval(job),
                "flag": job.flag,
                "enabled": job.flag is None or await self._flags.is_enabled(job.flag),
                "is_running": job.name in self._active,
                "status": JobStatus.RUNNING if job.name in self._active
                else (last.status if last else JobStatus.IDLE),
                "last_run": last,
            })
        return result


def register_default_jobs(
    scheduler: JobScheduler,
    settings: Settings,
    storage: Storage,
    ingestion: IngestionService,
    arbitrage: ArbitrageService,
    hedge_monitor: HedgeMonitor,
    clock: Clock = utc_now,
) -> None:
    """Register the standard polling, indexing, hedging and cleanup jobs."""

    def poll_filters(live_only: bool) -> ScanFilters:
        return ScanFilters(
            jurisdictions=settings.default_jurisdictions,
            sports=settings.default_sports,
            regions=settings.default_regions,
            markets=settings.default_markets,
            min_profit_pct=settings.min_profit_pct,
            live_only=live_only,
        )

    async def poll(name: str, live_only: bool) -> dict:
        result = await ingestion.ingest(poll_filters(live_only), operation=name)
        return {
            "events": len(result.events),
            "quotes": result.quotes_stored,
            "credits_used": result.credit_usage.cost,
            "credits_remaining": result.credit_usage.remaining,
            "failed_sports": [f.sport for f in result.failures],
        }

    async def prematch() -> dict:
        return await poll("odds_prematch_poller", live_only=False)

    async def live() -> dict:
        return await poll("odds_live_poller", live_only=True)

    async def index() -> dict:
        return await arbitrage.recompute(settings.default_jurisdictions)

    async def cleanup() -> dict:
        now = clock()
        return {
            "opportunities_deleted": await storage.delete_expired_opportunities(now),
            "quotes_purged": await storage.purge_quotes_before(
                after(now, -settings.quote_retention_seconds)
            ),
        }

    for job in (
        Job("odds_prematch_poller", settings.prematch_poll_interval, prematch,
            "Poll pre-match odds for the default sports", uses_credits=True),
        Job("odds_live_poller", settings.live_poll_interval, live,
            "Poll in-play odds", uses_credits=True, flag=AGGRESSIVE_POLLING),
        Job("arbitrage_indexer", settings.arbitrage_index_interval, index,
            "Re-evaluate stored quotes for arbitrage"),
        Job("hedge_monitor", settings.hedge_monitor_interval, hedge_monitor.run,
            "Evaluate tracked bets for hedge opportunities", flag=LIVE_HEDGING),
        Job("cleanup_expired", settings.cleanup_interval, cleanup,
            "Purge expired opportunities and old quotes"),
    ):
        scheduler.register(job)
