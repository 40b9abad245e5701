"""
CacheManager - Async-compatible bounded cache with TTL and pluggable eviction.

Features:
- FIFO eviction bounded by entry count (lightweight variant)
- LRU eviction bounded by estimated byte size (advanced variant)
- TTL per entry with lazy expiry on read
- Hit / miss / eviction statistics
- Thread-safe async operations
"""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from loguru import logger
from pydantic import BaseModel

T = TypeVar("T")

# Each serialized character is counted as two bytes (UTF-16 code unit).
# The multiplier only shifts eviction timing, it is not a correctness bound.
SIZE_MULTIPLIER = 2


class EvictionPolicy(str, Enum):
    """Which entry is evicted first when the cache is full."""

    FIFO = "fifo"  # Oldest inserted
    LRU = "lru"  # Least recently accessed


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return str(value)


def estimate_json_size(value: Any) -> int:
    """Estimate payload size as its serialized length times SIZE_MULTIPLIER."""
    return len(json.dumps(value, default=_jsonable)) * SIZE_MULTIPLIER


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    key: str
    value: T
    created_at: datetime
    ttl: timedelta
    last_accessed_at: datetime
    size_bytes: int = 0
    access_count: int = 0
    sequence: int = 0

    def is_expired(self, now: datetime) -> bool:
        """Check if entry is past its TTL."""
        return now - self.created_at > self.ttl


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    entry_count: int = 0
    size_bytes: int = 0
    max_size_bytes: int | None = None
    max_entries: int | None = None
    policy: EvictionPolicy = field(default=EvictionPolicy.LRU)

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "entry_count": self.entry_count,
            "size_bytes": self.size_bytes,
            "max_size_bytes": self.max_size_bytes,
            "max_entries": self.max_entries,
            "policy": self.policy.value,
            "hit_rate": f"{self.hit_rate:.2%}",
        }


class CacheManager(Generic[T]):
    """
    Bounded async cache with TTL expiry.

    Usage:
        cache = CacheManager(max_size_bytes=50 * 1024 * 1024)

        value = await cache.get("popular:page=1")
        if value is None:
            value = await fetch_data()
            await cache.set("popular:page=1", value, ttl=timedelta(minutes=30))

    A value larger than ``max_size_bytes`` is still stored once everything
    else has been evicted, so a single oversized payload can exceed the bound.
    """

    def __init__(
        self,
        policy: EvictionPolicy = EvictionPolicy.LRU,
        max_entries: int | None = None,
        max_size_bytes: int | None = 50 * 1024 * 1024,
        default_ttl: timedelta = timedelta(hours=1),
        size_estimator: Callable[[T], int] = estimate_json_size,
        clock: Callable[[], datetime] = datetime.now,
        debug: bool = False,
    ):
        if max_entries is None and max_size_bytes is None:
            raise ValueError("CacheManager needs max_entries or max_size_bytes")

        self._memory: dict[str, CacheEntry[T]] = {}
        self._policy = EvictionPolicy(policy)
        self._max_entries = max_entries
        self._max_size_bytes = max_size_bytes
        self._default_ttl = default_ttl
        self._size_estimator = size_estimator
        self._clock = clock
        self._debug = debug
        self._lock = asyncio.Lock()
        self._stats = CacheStats(policy=self._policy)
        self._current_size = 0
        self._sequence = 0

    @property
    def policy(self) -> EvictionPolicy:
        return self._policy

    @property
    def current_size_bytes(self) -> int:
        return self._current_size

    @property
    def entry_count(self) -> int:
        return len(self._memory)

    async def get(self, key: str) -> T | None:
        """
        Get value from cache.

        Expired entries are removed and counted as misses.
        """
        async with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                self._stats.misses += 1
                self._log(f"MISS: {key[:50]}")
                return None

            now = self._clock()
            if entry.is_expired(now):
                self._remove(key)
                self._stats.misses += 1
                self._log(f"EXPIRED: {key[:50]}")
                return None

            entry.access_count += 1
            entry.last_accessed_at = now
            entry.sequence = self._next_sequence()
            self._stats.hits += 1
            self._log(f"HIT: {key[:50]}")
            return entry.value

    async def has(self, key: str) -> bool:
        """Check for a live entry without touching hit/miss statistics."""
        async with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                self._remove(key)
                return False
            return True

    async def set(self, key: str, value: T, ttl: timedelta | None = None) -> None:
        """
        Set value in cache, evicting older entries until it fits.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live (uses default if not specified)
        """
        if ttl is None:
            ttl = self._default_ttl
        size = self._size_estimator(value)

        async with self._lock:
            if key in self._memory:
                self._remove(key)

            while self._memory and not self._fits(size):
                self._evict_one()

            now = self._clock()
            self._memory[key] = CacheEntry(
                key=key,
                value=value,
                created_at=now,
                ttl=ttl,
                last_accessed_at=now,
                size_bytes=size,
                sequence=self._next_sequence(),
            )
            self._current_size += size
            self._log(
                f"SET: {key[:50]} ({size} bytes, TTL: {ttl.total_seconds()}s)"
            )

    async def delete(self, key: str) -> bool:
        """Delete a specific key from cache."""
        async with self._lock:
            if key in self._memory:
                self._remove(key)
                self._log(f"DELETE: {key[:50]}")
                return True
            return False

    async def invalidate(self, pattern: str) -> int:
        """
        Invalidate all keys containing a substring.

        Returns:
            Number of entries invalidated
        """
        async with self._lock:
            keys_to_delete = [k for k in self._memory if pattern in k]
            for key in keys_to_delete:
                self._remove(key)

            if keys_to_delete:
                self._log(
                    f"INVALIDATE: {len(keys_to_delete)} entries matching '{pattern}'"
                )

            return len(keys_to_delete)

    async def clear(self) -> None:
        """Clear all entries and reset statistics."""
        async with self._lock:
            count = len(self._memory)
            self._memory.clear()
            self._current_size = 0
            self._stats = CacheStats(policy=self._policy)
            self._log(f"CLEAR: {count} entries removed")

    async def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        async with self._lock:
            now = self._clock()
            expired_keys = [k for k, v in self._memory.items() if v.is_expired(now)]
            for key in expired_keys:
                self._remove(key)

            if expired_keys:
                self._log(f"CLEANUP: {len(expired_keys)} expired entries removed")

            return len(expired_keys)

    def _fits(self, size: int) -> bool:
        if self._max_entries is not None and len(self._memory) >= self._max_entries:
            return False
        if (
            self._max_size_bytes is not None
            and self._current_size + size > self._max_size_bytes
        ):
            return False
        return True

    def _evict_one(self) -> None:
        """Evict a single entry according to the configured policy."""
        if self._policy == EvictionPolicy.FIFO:
            victim = next(iter(self._memory))
        else:
            victim = min(
                self._memory,
                key=lambda k: (
                    self._memory[k].last_accessed_at,
                    self._memory[k].sequence,
                ),
            )
        self._remove(victim)
        self._stats.evictions += 1
        self._log(f"EVICT ({self._policy.value}): {victim[:50]}")

    def _remove(self, key: str) -> None:
        entry = self._memory.pop(key)
        self._current_size -= entry.size_bytes

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        self._stats.entry_count = len(self._memory)
        self._stats.size_bytes = self._current_size
        self._stats.max_size_bytes = self._max_size_bytes
        self._stats.max_entries = self._max_entries
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[CacheManager] {message}")
