"""In-memory TTL cache for parsed JSON responses.

Entries expire lazily on read and are swept periodically by an asyncio task
owned by the cache. Expired-but-unswept entries are indistinguishable from
missing ones.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 10 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0

Clock = Callable[[], float]


class CachePolicy(str, Enum):
    """Interplay between cached data and network calls."""

    STALE_WHILE_REVALIDATE = "stale_while_revalidate"
    CACHE_THEN_NETWORK = "cache_then_network"
    NETWORK_ONLY = "network_only"
    CACHE_ONLY = "cache_only"


@dataclass(frozen=True)
class CacheEntry:
    """One cached response with its absolute expiry."""

    expires_at: float
    value: Any


@dataclass
class Stats:
    """Cache statistics."""

    size: int = 0
    hits: int = 0
    misses: int = 0
    expirations: int = 0
    sweeps: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate (0.0 to 1.0)."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Export as dictionary."""
        return {
            "size": self.size,
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "sweeps": self.sweeps,
            "hit_rate": self.hit_rate,
        }


class TTLCache:
    """
    Key -> (value, expiry) store with lazy expiry and a periodic sweep.

    Features:
    - Per-entry TTL override, default 10 minutes
    - Default cache policy carried by the instance
    - Cancellable background sweep (asyncio task)
    - Hit/miss statistics

    Examples:
        >>> cache = TTLCache(default_ttl=60)
        >>> cache.set("todos:abc", {"id": 7})
        >>> cache.get("todos:abc")
        {'id': 7}
    """

    def __init__(
        self,
        policy: CachePolicy = CachePolicy.STALE_WHILE_REVALIDATE,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Clock = time.time,
        on_sweep: Callable[[int], None] | None = None,
    ):
        """
        Initialize TTL cache.

        Args:
            policy: Default cache policy for fetches using this cache
            default_ttl: Time-to-live in seconds when no override is given
            sweep_interval: Seconds between background sweeps
            clock: Time source in seconds (injectable for tests)
            on_sweep: Called with the removed count after each background sweep
        """
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        if sweep_interval <= 0:
            raise ValueError("sweep_interval must be positive")

        self.policy = CachePolicy(policy)
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._on_sweep = on_sweep

        self._entries: dict[str, CacheEntry] = {}
        self._stats = Stats()
        self._sweep_task: asyncio.Task[None] | None = None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Store value, overwriting any previous entry for key.

        Args:
            key: Cache key
            value: Parsed JSON value
            ttl: Optional TTL override in seconds
        """
        lifetime = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(expires_at=self._clock() + lifetime, value=value)
        self._stats.size = len(self._entries)

    def get_entry(self, key: str) -> CacheEntry | None:
        """Get the live entry for key, or None if missing/expired."""
        entry = self._entries.get(key)

        if entry is None:
            self._stats.misses += 1
            return None

        if entry.expires_at <= self._clock():
            del self._entries[key]
            self._stats.size = len(self._entries)
            self._stats.expirations += 1
            self._stats.misses += 1
            return None

        self._stats.hits += 1
        return entry

    def get(self, key: str) -> Any | None:
        """
        Get cached value if present and not expired.

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def remove(self, key: str) -> bool:
        """Remove entry; True if something was removed."""
        removed = self._entries.pop(key, None) is not None
        self._stats.size = len(self._entries)
        return removed

    def remove_namespace(self, namespace: str) -> int:
        """
        Remove every entry whose key is prefixed with ``namespace:``.

        Returns:
            Number of removed entries
        """
        prefix = f"{namespace}:"
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        self._stats.size = len(self._entries)
        return len(doomed)

    def clear(self) -> None:
        """Clear entire cache."""
        self._entries.clear()
        self._stats.size = 0

    def iterate(self) -> list[tuple[str, CacheEntry]]:
        """Snapshot of all stored entries (including unswept expired ones)."""
        return list(self._entries.items())

    def sweep(self) -> int:
        """
        Drop every entry whose expiry has passed.

        Returns:
            Number of removed entries
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]

        self._stats.size = len(self._entries)
        self._stats.expirations += len(expired)
        self._stats.sweeps += 1
        return len(expired)

    def start(self) -> None:
        """Start the background sweep on the running event loop (idempotent)."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
        logger.debug("cache_sweep_started", interval=self.sweep_interval)

    async def stop(self) -> None:
        """Cancel the background sweep and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("cache_sweep_stopped")

    @property
    def running(self) -> bool:
        """True while the background sweep is scheduled."""
        return self._sweep_task is not None and not self._sweep_task.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                removed = self.sweep()
                if self._on_sweep is not None:
                    self._on_sweep(removed)
            except Exception as e:
                logger.error("cache_sweep_failed", error=str(e), exc_info=True)
                continue

            if removed:
                logger.debug("cache_sweep", removed=removed, size=len(self._entries))

    @property
    def stats(self) -> Stats:
        """Get cache statistics."""
        return self._stats

    def __len__(self) -> int:
        """Return number of stored entries."""
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        """Check for a live entry (doesn't touch statistics)."""
        entry = self._entries.get(key)
        return entry is not None and entry.expires_at > self._clock()


__all__ = [
    "CachePolicy",
    "CacheEntry",
    "Stats",
    "TTLCache",
    "DEFAULT_TTL_SECONDS",
    "DEFAULT_SWEEP_INTERVAL_SECONDS",
]
