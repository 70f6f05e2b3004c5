"""In-memory TTL cache for reference data."""

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value with expiration."""

    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """Check if this entry has expired."""
        return now > self.expires_at


@dataclass
class TTLCacheConfig:
    """Configuration for a TTL cache."""

    max_size: int = 128
    ttl_seconds: int = 3600


class TTLCache:
    """Thread-safe in-memory cache with per-entry TTL.

    Instances are created by the application factory and handed to the
    services that need them, so each cache has exactly one owner.
    """

    def __init__(
        self,
        config: TTLCacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            config: Optional cache configuration.
            clock: Time source in seconds; injectable for tests.
        """
        self.config = config or TTLCacheConfig()
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}
        self._lock = Lock()

    def get(self, key: str) -> Any | None:
        """Get a cached value if present and not expired.

        Args:
            key: Cache key.

        Returns:
            The cached value or None if missing/expired.
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                logger.debug("Cache miss for key %s", key)
                return None

            if entry.is_expired(self._clock()):
                logger.debug("Cache expired for key %s", key)
                del self._cache[key]
                return None

            logger.debug("Cache hit for key %s", key)
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Cache a value with TTL.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl_seconds: Optional TTL override for this entry.
        """
        ttl = ttl_seconds if ttl_seconds is not None else self.config.ttl_seconds
        expires_at = self._clock() + ttl

        with self._lock:
            if key not in self._cache and len(self._cache) >= self.config.max_size:
                self._evict_oldest()

            self._cache[key] = CacheEntry(value=value, expires_at=expires_at)
            logger.debug("Cached key %s (expires in %ds)", key, ttl)

    def _evict_oldest(self) -> None:
        """Evict entries to make room. Must be called with lock held."""
        now = self._clock()
        expired_keys = [k for k, v in self._cache.items() if v.is_expired(now)]
        for key in expired_keys:
            del self._cache[key]

        if len(self._cache) >= self.config.max_size:
            oldest_key = min(self._cache.items(), key=lambda x: x[1].expires_at)[0]
            del self._cache[oldest_key]

    def cleanup(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            expired_keys = [k for k, v in self._cache.items() if v.is_expired(now)]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)

    def clear(self) -> int:
        """Clear all cached entries.

        Returns:
            Number of entries cleared.
        """
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            return count

    def get_stats(self) -> dict:
        """Get cache statistics for monitoring."""
        now = self._clock()
        with self._lock:
            valid_count = sum(1 for v in self._cache.values() if not v.is_expired(now))
            return {
                "total_entries": len(self._cache),
                "valid_entries": valid_count,
                "max_size": self.config.max_size,
                "ttl_seconds": self.config.ttl_seconds,
            }
