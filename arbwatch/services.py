"""Application wiring.

Builds every engine component from one Settings object. Nothing here is
a module-level singleton: the app owns one Services instance.
"""

from dataclasses import dataclass

import structlog

from .config import Settings
from .core.eligibility import EligibilityRegistry
from .core.flags import FeatureFlags
from .engine.bets import BetService
from .engine.budget import CreditBudget
from .engine.hedge import HedgeMonitor, HedgeParams
from .engine.scanner import ArbitrageService
from .engine.scheduler import JobScheduler, register_default_jobs
from .ingestion.odds_api import OddsProvider, client_from_settings
from .ingestion.service import IngestionService
from .storage.audit import AuditLog
from .storage.base import Storage
from .storage.memory import InMemoryStorage
from .utils.cache import Clock
from .utils.time import utc_now

logger = structlog.get_logger()


@dataclass
class Services:
    settings: Settings
    storage: Storage
    audit: AuditLog
    registry: EligibilityRegistry
    budget: CreditBudget
    flags: FeatureFlags
    provider: OddsProvider
    ingestion: IngestionService
    arbitrage: ArbitrageService
    hedge_monitor: HedgeMonitor
    bets: BetService
    scheduler: JobScheduler
    clock: Clock = utc_now

    async def startup(self) -> None:
        await self.flags.initialize_defaults()
        if self.settings.scheduler_enabled:
            self.scheduler.start()
        logger.info("services_started", scheduler_enabled=self.settings.scheduler_enabled)

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        await self.provider.close()


def build_services(
    settings: Settings | None = None,
    storage: Storage | None = None,
    provider: OddsProvider | None = None,
    clock: Clock = utc_now,
) -> Services:
    """Wire the engine. Storage and provider can be swapped for tests."""
    settings = settings or Settings()
    storage = storage or InMemoryStorage()
    provider = provider or client_from_settings(settings)

    audit = AuditLog(storage)
    registry = EligibilityRegistry(
        cache_ttl_seconds=settings.eligibility_cache_ttl_seconds,
        clock=clock,
    )
    budget = CreditBudget(
        remaining=settings.initial_credits_remaining,
        reserve_floor=settings.budget_reserve_credits,
        policy=settings.budget_policy,
    )
    flags = FeatureFlags(storage, audit, ttl_seconds=settings.feature_flag_ttl_seconds, clock=clock)

    ingestion = IngestionService(
        provider, storage, registry, budget, audit, default_sports=settings.default_sports
    )
    arbitrage = ArbitrageService(storage, registry, ingestion, audit, settings, clock=clock)
    hedge_monitor = HedgeMonitor(
        storage,
        audit,
        params=HedgeParams.from_settings(settings),
        quote_max_age_seconds=settings.quote_max_age_seconds,
        clock=clock,
    )
    bets = BetService(storage, audit, hedge_monitor)

    scheduler = JobScheduler(
        storage, flags, budget, audit,
        throttle_factor=settings.budget_throttle_factor,
        clock=clock,
    )
    register_default_jobs(scheduler, settings, storage, ingestion, arbitrage, hedge_monitor, clock=clock)

    return Services(
        settings=settings,
        storage=storage,
        audit=audit,
        registry=registry,
        budget=budget,
        flags=flags,
        provider=provider,
        ingestion=ingestion,
        arbitrage=arbitrage,
        hedge_monitor=hedge_monitor,
        bets=bets,
        scheduler=scheduler,
        clock=clock,
    )
