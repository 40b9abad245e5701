"""Tests for CacheManager eviction, TTL and statistics."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from catalog.services.cache import (
    SIZE_MULTIPLIER,
    CacheManager,
    EvictionPolicy,
    estimate_json_size,
)
from catalog.datasource.types import Movie
from tests.conftest import FakeClock


class TestSizeEstimate:
    """Tests for the JSON-based size estimator."""

    def test_string_size(self) -> None:
        """A string is measured by its serialized length."""
        assert estimate_json_size("abc") == len('"abc"') * SIZE_MULTIPLIER

    def test_model_size(self) -> None:
        """Pydantic models are serialized through model_dump."""
        movie = Movie(id=1, title="A", year="2020", rating=3)
        assert estimate_json_size(movie) > 0


class TestCacheBasics:
    """Tests for get/set/has/delete."""

    def test_requires_a_bound(self) -> None:
        """A cache with neither bound is rejected."""
        with pytest.raises(ValueError):
            CacheManager(max_entries=None, max_size_bytes=None)

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self) -> None:
        cache = CacheManager()
        assert await cache.get("nope") is None
        assert cache.get_stats().misses == 1

    @pytest.mark.asyncio
    async def test_repeated_reads_return_same_value(self) -> None:
        """Reading a live entry twice yields the same value both times."""
        cache = CacheManager()
        await cache.set("k", {"a": 1})

        first = await cache.get("k")
        second = await cache.get("k")

        assert first == second == {"a": 1}
        assert cache.get_stats().hits == 2

    @pytest.mark.asyncio
    async def test_has_does_not_touch_stats(self) -> None:
        cache = CacheManager()
        await cache.set("k", "v")

        assert await cache.has("k") is True
        assert await cache.has("other") is False

        stats = cache.get_stats()
        assert stats.hits == 0
        assert stats.misses == 0

    @pytest.mark.asyncio
    async def test_overwrite_replaces_size(self) -> None:
        """Re-setting a key does not double count its size."""
        cache = CacheManager()
        await cache.set("k", "x" * 10)
        await cache.set("k", "y" * 10)

        assert cache.entry_count == 1
        assert cache.current_size_bytes == estimate_json_size("y" * 10)

    @pytest.mark.asyncio
    async def test_delete_and_invalidate(self) -> None:
        cache = CacheManager()
        await cache.set("popular:page=1", 1)
        await cache.set("popular:page=2", 2)
        await cache.set("search:page=1&q=x", 3)

        assert await cache.delete("popular:page=1") is True
        assert await cache.delete("popular:page=1") is False
        assert await cache.invalidate("search:") == 1
        assert cache.entry_count == 1


class TestCacheTTL:
    """Tests for lazy expiry."""

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self) -> None:
        """An entry with a 100ms TTL is gone 150ms later."""
        cache = CacheManager()
        await cache.set("k", "v", ttl=timedelta(milliseconds=100))

        assert await cache.get("k") == "v"
        await asyncio.sleep(0.15)

        assert await cache.get("k") is None
        assert cache.entry_count == 0
        assert cache.current_size_bytes == 0

    @pytest.mark.asyncio
    async def test_expiry_with_fake_clock(self, clock: FakeClock) -> None:
        cache = CacheManager(clock=clock, default_ttl=timedelta(seconds=60))
        await cache.set("k", "v")

        clock.advance(59)
        assert await cache.get("k") == "v"

        clock.advance(2)
        assert await cache.get("k") is None
        assert cache.get_stats().misses == 1

    @pytest.mark.asyncio
    async def test_zero_ttl_is_not_replaced_by_default(self, clock: FakeClock) -> None:
        """An explicit zero TTL expires as soon as time moves."""
        cache = CacheManager(clock=clock, default_ttl=timedelta(hours=1))
        await cache.set("k", "v", ttl=timedelta(0))

        clock.advance(1)

        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_cleanup_expired(self, clock: FakeClock) -> None:
        cache = CacheManager(clock=clock)
        await cache.set("short", 1, ttl=timedelta(seconds=1))
        await cache.set("long", 2, ttl=timedelta(seconds=100))

        clock.advance(5)

        assert await cache.cleanup_expired() == 1
        assert await cache.has("long") is True


class TestCacheEviction:
    """Tests for FIFO and LRU eviction."""

    @pytest.mark.asyncio
    async def test_fifo_evicts_oldest_insert(self) -> None:
        cache = CacheManager(
            policy=EvictionPolicy.FIFO, max_entries=2, max_size_bytes=None
        )
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.get("a")  # Access order is ignored by FIFO
        await cache.set("c", 3)

        assert await cache.has("a") is False
        assert await cache.has("b") is True
        assert await cache.has("c") is True
        assert cache.get_stats().evictions == 1

    @pytest.mark.asyncio
    async def test_lru_evicts_least_recently_read(self) -> None:
        cache = CacheManager(
            policy=EvictionPolicy.LRU, max_entries=2, max_size_bytes=None
        )
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.get("a")
        await cache.set("c", 3)

        assert await cache.has("a") is True
        assert await cache.has("b") is False
        assert await cache.has("c") is True

    @pytest.mark.asyncio
    async def test_byte_bound_is_respected(self) -> None:
        """Total size stays within max_size_bytes for normal-sized values."""
        value = "x" * 40
        size = estimate_json_size(value)
        cache = CacheManager(max_size_bytes=size * 3)

        for i in range(10):
            await cache.set(f"k{i}", value)
            assert cache.current_size_bytes <= size * 3

        assert cache.entry_count == 3
        assert cache.get_stats().evictions == 7

    @pytest.mark.asyncio
    async def test_oversized_value_is_stored_alone(self) -> None:
        """A value larger than the bound evicts everything else and is kept."""
        cache = CacheManager(max_size_bytes=100)
        await cache.set("small", "x")
        await cache.set("huge", "y" * 500)

        assert cache.entry_count == 1
        assert await cache.get("huge") == "y" * 500


class TestCacheStats:
    """Tests for statistics reporting."""

    @pytest.mark.asyncio
    async def test_stats_dict(self) -> None:
        cache = CacheManager(policy=EvictionPolicy.FIFO, max_entries=5, max_size_bytes=None)
        await cache.set("k", "v")
        await cache.get("k")
        await cache.get("missing")

        stats = cache.get_stats().to_dict()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == "50.00%"
        assert stats["entry_count"] == 1
        assert stats["policy"] == "fifo"
        assert stats["max_entries"] == 5

    @pytest.mark.asyncio
    async def test_clear_resets_everything(self) -> None:
        cache = CacheManager()
        await cache.set("k", "v")
        await cache.get("k")

        await cache.clear()

        stats = cache.get_stats()
        assert stats.entry_count == 0
        assert stats.size_bytes == 0
        assert stats.hits == 0
