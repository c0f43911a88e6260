"""In-memory caching utilities."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Generic, Hashable, TypeVar

from .time import utc_now

T = TypeVar("T")

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Single cache entry with the time it was inserted."""
    value: T
    inserted_at: datetime

    def age_seconds(self, now: datetime) -> float:
        return (now - self.inserted_at).total_seconds()


class TTLCache:
    """
    In-memory cache with TTL support.

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds: float = 10.0, clock: Clock = utc_now):
        self._cache: dict[Hashable, CacheEntry] = {}
        self._ttl = ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _is_expired(self, entry: CacheEntry, max_age_seconds: float | None) -> bool:
        ttl = max_age_seconds if max_age_seconds is not None else self._ttl
        return entry.age_seconds(self._clock()) >= ttl

    def get(self, key: Hashable, max_age_seconds: float | None = None) -> Any | None:
        """Get value from cache if not expired."""
        entry = self._cache.get(key)
        if entry is None:
            return None

        if self._is_expired(entry, max_age_seconds):
            del self._cache[key]
            return None

        return entry.value

    def set(self, key: Hashable, value: Any) -> None:
        """Set value in cache."""
        self._cache[key] = CacheEntry(value=value, inserted_at=self._clock())

    def delete(self, key: Hashable) -> None:
        """Delete key from cache."""
        self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        self._cache.clear()

    def cleanup_expired(self, max_age_seconds: float | None = None) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        expired_keys = [
            key for key, entry in self._cache.items()
            if self._is_expired(entry, max_age_seconds)
        ]
        for key in expired_keys:
            del self._cache[key]
        return len(expired_keys)

    def __len__(self) -> int:
        return len(self._cache)
