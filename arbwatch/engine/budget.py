"""Provider credit budget.

The one piece of mutable state shared by every job that calls the odds
provider. All updates happen under a single lock.
"""

import asyncio
from contextlib import asynccontextmanager

import structlog

from ..config import BudgetPolicy
from ..core.errors import BudgetExhausted
from ..core.models import CreditUsage

logger = structlog.get_logger()


class CreditBudget:
    """
    Tracks cumulative credits used/remaining as reported by the provider.

    A fetch first reserves its estimated cost, so two concurrent jobs
    cannot both spend the last credits. The reservation is released once
    the provider reports the real numbers.
    """

    def __init__(
        self,
        remaining: int | None = None,
        reserve_floor: int = 0,
        policy: BudgetPolicy = BudgetPolicy.SKIP,
    ):
        self._used = 0
        self._remaining = remaining
        self._reserved = 0
        self._reserve_floor = reserve_floor
        self._policy = policy
        self._lock = asyncio.Lock()

    @property
    def used(self) -> int:
        return self._used

    @property
    def remaining(self) -> int | None:
        return self._remaining

    @property
    def reserved(self) -> int:
        return self._reserved

    @property
    def policy(self) -> BudgetPolicy:
        return self._policy

    @property
    def available(self) -> int | None:
        """Credits free to reserve, or None while the provider has not reported."""
        if self._remaining is None:
            return None
        return self._remaining - self._reserved - self._reserve_floor

    @property
    def is_low(self) -> bool:
        available = self.available
        return available is not None and available <= 0

    @asynccontextmanager
    async def reserve(self, cost: int):
        """
        Hold `cost` credits for the duration of a fetch.

        Raises BudgetExhausted when the policy is not IGNORE and the known
        remaining credits cannot cover the cost.
        """
        async with self._lock:
            available = self.available
            if (
                self._policy != BudgetPolicy.IGNORE
                and available is not None
                and cost > available
            ):
                logger.warning(
                    "credit_budget_exhausted",
                    required=cost,
                    available=available,
                    remaining=self._remaining,
                )
                raise BudgetExhausted(cost, available)
            self._reserved += cost

        try:
            yield self
        finally:
            async with self._lock:
                self._reserved -= cost

    async def settle(self, usage: CreditUsage) -> None:
        """Apply provider-reported usage."""
        async with self._lock:
            if usage.used:
                self._used = usage.used
            elif usage.cost:
                self._used += usage.cost
            if usage.remaining is not None:
                self._remaining = usage.remaining
            elif self._remaining is not None and usage.cost:
                self._remaining = max(0, self._remaining - usage.cost)

        logger.info(
            "credit_budget_updated",
            used=self._used,
            remaining=self._remaining,
            cost=usage.cost,
        )

    def snapshot(self) -> CreditUsage:
        return CreditUsage(used=self._used, remaining=self._remaining)
