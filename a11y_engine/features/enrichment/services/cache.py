import hashlib
import json
import logging
import threading
from typing import Dict, Optional

from a11y_engine.features.enrichment.schemas.enrichment import CacheStats, Enrichment
from a11y_engine.platform.config import settings

logger = logging.getLogger(__name__)

REDIS_KEY_PREFIX = "a11y:enrichment:"


def fingerprint(source: str, normalized_error_type: str) -> str:
    """Stable cache key for a (source, normalized error type) pair."""
    source = getattr(source, "value", source)
    raw = f"{source}|{normalized_error_type}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class MemoryCacheStore:
    """Dict-backed store, lives as long as the cache object (one audit run by default)."""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._data)


class RedisCacheStore:
    """Redis-backed store for enrichment shared across runs and workers."""

    def __init__(self, client=None, ttl_seconds: Optional[int] = None, prefix: str = REDIS_KEY_PREFIX):
        if client is None:
            from a11y_engine.platform.cache.redis import get_redis
            client = get_redis()
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        return self.client.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        if self.ttl_seconds:
            self.client.setex(self._key(key), self.ttl_seconds, value)
        else:
            self.client.set(self._key(key), value)

    def exists(self, key: str) -> bool:
        return bool(self.client.exists(self._key(key)))

    def clear(self) -> None:
        keys = list(self.client.scan_iter(match=f"{self.prefix}*"))
        if keys:
            self.client.delete(*keys)

    def size(self) -> int:
        return sum(1 for _ in self.client.scan_iter(match=f"{self.prefix}*"))


class EnrichmentCache:
    """
    Fingerprint -> Enrichment cache with hit/miss accounting.

    Passed explicitly into the pipeline. ``put`` overwrites, ``clear`` resets
    entries and counters between independent campaigns. ``lock_for`` hands out
    one lock per fingerprint so concurrent resolvers of the same fingerprint
    line up behind the first one.
    """

    def __init__(self, store=None):
        self.store = store if store is not None else MemoryCacheStore()
        self.hits = 0
        self.misses = 0
        self._counter_lock = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def has(self, fp: str) -> bool:
        return self.store.exists(fp)

    def get(self, fp: str) -> Optional[Enrichment]:
        raw = self.store.get(fp)
        with self._counter_lock:
            if raw is None:
                self.misses += 1
                return None
            self.hits += 1
        return Enrichment.model_validate(json.loads(raw))

    def peek(self, fp: str) -> Optional[Enrichment]:
        """Read without touching the counters."""
        raw = self.store.get(fp)
        return Enrichment.model_validate(json.loads(raw)) if raw is not None else None

    def put(self, fp: str, enrichment: Enrichment) -> None:
        self.store.set(fp, enrichment.model_dump_json())

    def lock_for(self, fp: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(fp)
            if lock is None:
                lock = threading.Lock()
                self._locks[fp] = lock
            return lock

    def clear(self) -> None:
        self.store.clear()
        with self._counter_lock:
            self.hits = 0
            self.misses = 0
        with self._locks_guard:
            self._locks.clear()

    def stats(self) -> CacheStats:
        with self._counter_lock:
            hits, misses = self.hits, self.misses
        total = hits + misses
        return CacheStats(
            hits=hits,
            misses=misses,
            total=total,
            hit_rate=round(hits / total * 100, 2) if total > 0 else 0.0,
            size=self.store.size(),
        )

    def log_stats(self) -> None:
        stats = self.stats()
        logger.info(
            f"Enrichment cache: {stats.hits} hits, {stats.misses} misses "
            f"({stats.hit_rate}% hit rate), {stats.size} entries"
        )


def build_cache() -> EnrichmentCache:
    """Cache for one audit run, backed by the configured store."""
    if settings.ENRICHMENT_CACHE_BACKEND == "redis":
        return EnrichmentCache(RedisCacheStore(ttl_seconds=settings.ENRICHMENT_CACHE_TTL_SECONDS))
    return EnrichmentCache(MemoryCacheStore())
