"""Feature flags backed by storage with a TTL read cache."""

import structlog

from ..storage.audit import AuditLog
from ..storage.base import Storage
from ..utils.cache import Clock, TTLCache
from ..utils.time import utc_now
from .models import FeatureFlag

logger = structlog.get_logger()

LIVE_HEDGING = "live_hedging"
AGGRESSIVE_POLLING = "aggressive_polling"

DEFAULT_FLAGS: dict[str, tuple[bool, str]] = {
    "auto_placement": (False, "Enable automated bet placement (experimental)"),
    AGGRESSIVE_POLLING: (False, "Enable high-frequency live odds polling"),
    LIVE_HEDGING: (True, "Enable real-time hedge monitoring"),
    "email_notifications": (False, "Enable email notifications for alerts"),
    "webhook_notifications": (False, "Enable webhook notifications"),
}


class FeatureFlags:

    def __init__(
        self,
        storage: Storage,
        audit: AuditLog,
        ttl_seconds: float = 300.0,
        clock: Clock = utc_now,
    ):
        self._storage = storage
        self._audit = audit
        self._clock = clock
        self._cache = TTLCache(ttl_seconds=ttl_seconds, clock=clock)

    async def is_enabled(self, key: str, default: bool = False) -> bool:
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        flag = await self._storage.get_feature_flag(key)
        enabled = flag.enabled if flag is not None else default
        self._cache.set(key, enabled)
        return enabled

    async def set_flag(
        self,
        key: str,
        enabled: bool,
        description: str | None = None,
        actor: str = "system",
    ) -> FeatureFlag:
        existing = await self._storage.get_feature_flag(key)
        if description is None:
            description = existing.description if existing else f"Feature flag: {key}"

        flag = await self._storage.upsert_feature_flag(
            FeatureFlag(key=key, enabled=enabled, description=description, updated_at=self._clock())
        )
        self._cache.delete(key)

        logger.info("feature_flag_updated", key=key, enabled=enabled)
        await self._audit.record(actor, "feature_flag_updated", f"feature_flag:{key}", {
            "enabled": enabled,
            "description": description,
        })
        return flag

    async def initialize_defaults(self) -> int:
        """Seed missing default flags. Returns how many were created."""
        created = 0
        for key, (enabled, description) in DEFAULT_FLAGS.items():
            if await self._storage.get_feature_flag(key) is None:
                await self._storage.upsert_feature_flag(
                    FeatureFlag(key=key, enabled=enabled, description=description, updated_at=self._clock())
                )
                created += 1

        if created:
            await self._audit.system("default_feature_flags_initialized", payload={"flags_count": created})
        return created

    async def list_flags(self) -> list[FeatureFlag]:
        return await self._storage.list_feature_flags()

    def clear_cache(self) -> None:
        self._cache.clear()
