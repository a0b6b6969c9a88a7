# ============================================================================
# src/nanopore_intake/resilience/cache.py
# ============================================================================
"""
Result cache for expensive extraction calls.

Features:
- TTL expiration
- LRU eviction when max_size is reached
- Thread-safe operations
- Statistics

Keys are "<operation>:<md5 of canonical JSON input>", so identical input to
the same operation hits regardless of dict ordering.
"""

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    key: str
    value: Any
    timestamp: float
    ttl_seconds: Optional[float] = None
    access_count: int = 0

    def is_expired(self, now: float) -> bool:
        if self.ttl_seconds is None:
            return False
        return now - self.timestamp >= self.ttl_seconds


class CacheStatistics:
    """Track cache performance metrics"""

    def __init__(self):
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0
        self.writes = 0

    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "writes": self.writes,
            "hit_rate": self.hit_rate(),
        }


class ResultCache:
    """
    Example:
        cache = ResultCache(ttl_seconds=3600)
        key = cache.make_key("external_extract", {"text": text})
        cache.set(key, record)
        record = cache.get(key)
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = 3600.0,
        enabled: bool = True,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled
        self.max_size = max_size
        self._clock = clock

        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._stats = CacheStatistics()

    @classmethod
    def from_settings(cls, settings=None, **kwargs) -> "ResultCache":
        if settings is None:
            from ..config import resilience_settings as settings
        return cls(ttl_seconds=settings.CACHE_TTL, enabled=settings.ENABLE_CACHE, **kwargs)

    @staticmethod
    def make_key(operation: str, payload: Any) -> str:
        canonical = json.dumps(payload, sort_keys=True, default=str, ensure_ascii=False)
        digest = hashlib.md5(canonical.encode("utf-8")).hexdigest()
        return f"{operation}:{digest}"

    def get(self, key: str, default: Any = None) -> Any:
        if not self.enabled:
            return default

        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._stats.misses += 1
                return default

            if entry.is_expired(self._clock()):
                logger.debug(f"Cache entry expired: {key}")
                del self._cache[key]
                self._stats.misses += 1
                self._stats.expirations += 1
                return default

            entry.access_count += 1
            self._cache.move_to_end(key)
            self._stats.hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        if not self.enabled:
            return

        with self._lock:
            if key not in self._cache:
                while len(self._cache) >= self.max_size:
                    oldest = next(iter(self._cache))
                    del self._cache[oldest]
                    self._stats.evictions += 1

            self._cache[key] = CacheEntry(
                key=key,
                value=value,
                timestamp=self._clock(),
                ttl_seconds=ttl_seconds if ttl_seconds is not None else self.ttl_seconds,
            )
            self._cache.move_to_end(key)
            self._stats.writes += 1

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
        logger.info("Result cache cleared")

    def cleanup_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._cache.items() if entry.is_expired(now)]
            for key in expired:
                del self._cache[key]
                self._stats.expirations += 1

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def get_statistics(self) -> Dict[str, Any]:
        with self._lock:
            stats = self._stats.to_dict()
            stats["entry_count"] = len(self._cache)
            stats["max_size"] = self.max_size
            stats["ttl_seconds"] = self.ttl_seconds
            stats["enabled"] = self.enabled
            return stats
