"""
Key-value cache backends.

Two interchangeable backends store opaque string payloads under string keys
with a TTL in seconds:

- ``CacheManager``: Redis via ``redis.asyncio`` (production).
- ``MemoryCache``: a bounded process-local TTL cache built on ``cachetools``
  (single-node deployments, local development, tests).

Both report failures by raising ``CacheError``; a miss is ``None``.  They
never decide what a failure *means*: the article cache adapters and
``ArticleService`` own that policy.
"""
import fnmatch
import logging
import time
from typing import Callable

import redis.asyncio as redis
from cachetools import TLRUCache
from redis.exceptions import RedisError

from content_api.errors import CacheError

logger = logging.getLogger(__name__)


class _CacheStats:
    """Hit / miss / error counters shared by both backends."""

    def __init__(self) -> None:
        self._hits: int = 0
        self._misses: int = 0
        self._errors: int = 0

    def _record(self, hit: bool) -> None:
        if hit:
            self._hits += 1
        else:
            self._misses += 1

    @property
    def stats(self) -> dict:
        """Return a snapshot of the counters for the metrics endpoint."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "errors": self._errors,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


class CacheManager(_CacheStats):
    """
    Redis-backed cache.

    Until ``connect`` has been called every read is a miss and every write
    is skipped, which keeps the app usable with no Redis configured.  Once
    connected, transport errors surface as ``CacheError``.
    """

    def __init__(self) -> None:
        super().__init__()
        self._redis: redis.Redis | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, url: str) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        # The pool reconnects on demand, so a failed ping is not fatal.
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", url)
        except (RedisError, OSError) as exc:
            logger.warning("Redis ping failed, cache reads will miss until it recovers: %s", exc)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    @property
    def connected(self) -> bool:
        return self._redis is not None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        if not self._redis:
            self._record(hit=False)
            return None
        try:
            data = await self._redis.get(key)
        except (RedisError, OSError) as exc:
            self._errors += 1
            raise CacheError(f"cache GET failed for key={key!r}: {exc}") from exc
        self._record(hit=data is not None)
        return data

    async def set(self, key: str, value: str, ttl: int) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, value, ex=ttl)
        except (RedisError, OSError) as exc:
            self._errors += 1
            raise CacheError(f"cache SET failed for key={key!r}: {exc}") from exc

    async def delete(self, key: str) -> None:
        if not self._redis:
            return
        try:
            await self._redis.delete(key)
        except (RedisError, OSError) as exc:
            self._errors += 1
            raise CacheError(f"cache DELETE failed for key={key!r}: {exc}") from exc

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching *pattern* using SCAN (avoids blocking KEYS).

        Returns the number of keys removed.
        """
        if not self._redis:
            return 0
        try:
            keys: list[str] = []
            async for key in self._redis.scan_iter(match=pattern):
                keys.append(key)
            if keys:
                await self._redis.delete(*keys)
        except (RedisError, OSError) as exc:
            self._errors += 1
            raise CacheError(f"cache DELETE_PATTERN failed for pattern={pattern!r}: {exc}") from exc
        logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        return len(keys)


def _expires_at(_key: str, entry: tuple[str, int], now: float) -> float:
    return now + entry[1]


class MemoryCache(_CacheStats):
    """
    Process-local cache with the same interface as ``CacheManager``.

    Entries live in a ``cachetools.TLRUCache`` keyed by cache key, each with
    its own deadline taken from the ``ttl`` passed to ``set``.  Expired
    entries are purged whenever the cache is written, and the least recently
    used entry is evicted once ``maxsize`` is reached, so memory stays
    bounded however many distinct pages are requested.  All operations are
    synchronous under the hood, so they are atomic with respect to the
    event loop.
    """

    def __init__(self, maxsize: int = 10_000, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__()
        self._entries: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=clock)

    @property
    def connected(self) -> bool:
        return True

    @property
    def size(self) -> int:
        """Number of live entries; expired ones are purged first."""
        self._entries.expire()
        return len(self._entries)

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        self._record(hit=entry is not None)
        return entry[0] if entry is not None else None

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._entries[key] = (value, ttl)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def delete_pattern(self, pattern: str) -> int:
        self._entries.expire()
        keys = [k for k in list(self._entries) if fnmatch.fnmatchcase(k, pattern)]
        for key in keys:
            self._entries.pop(key, None)
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()


# Module-level singleton shared across all request handlers.
cache = CacheManager()
