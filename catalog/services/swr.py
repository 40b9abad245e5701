"""
StaleWhileRevalidateStore - Serve cached data immediately, refresh in the background.

- A cached value is always returned at once, tagged stale past ``max_age``
- A stale read schedules at most one background refresh per key
- A failed refresh keeps the old value and records the error for callers
- With nothing cached, the fetch happens in the foreground
"""

import asyncio
import inspect
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Generic, TypeVar

from loguru import logger

from catalog.services.cache import CacheManager, EvictionPolicy

T = TypeVar("T")

Revalidated = Callable[[T], Any]


@dataclass
class SWREntry(Generic[T]):
    """A committed value and when it was fetched."""

    value: T
    fetched_at: datetime


@dataclass
class SWRResult(Generic[T]):
    """Result from a stale-while-revalidate read."""

    value: T
    is_stale: bool
    error: Exception | None = None
    age: timedelta = timedelta(0)


class StaleWhileRevalidateStore(Generic[T]):
    """
    Stale-while-revalidate policy on top of CacheManager.

    Usage:
        store = StaleWhileRevalidateStore()
        result = await store.get("trending:window=week", fetch_trending, timedelta(minutes=5))
        if result.is_stale:
            show_badge("updating")
    """

    def __init__(
        self,
        cache: CacheManager[SWREntry[T]] | None = None,
        retention: timedelta = timedelta(days=1),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._clock = clock
        self._cache = cache or CacheManager(
            policy=EvictionPolicy.FIFO,
            max_entries=100,
            max_size_bytes=None,
            default_ttl=retention,
            size_estimator=lambda _entry: 0,
            clock=clock,
        )
        self._errors: dict[str, Exception] = {}
        self._refreshing: dict[str, asyncio.Task] = {}

    async def get(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        max_age: timedelta,
        on_revalidate: Revalidated | None = None,
    ) -> SWRResult[T]:
        """
        Read ``key``, refreshing it in the background when stale.

        Args:
            key: Cache key
            fetcher: Loads a fresh value
            max_age: Age after which the cached value is stale
            on_revalidate: Called with every freshly committed value

        Raises:
            Whatever ``fetcher`` raises, only when nothing is cached yet
        """
        entry = await self._cache.get(key)
        if entry is None:
            value = await self._fetch_and_commit(key, fetcher, on_revalidate)
            return SWRResult(value=value, is_stale=False)

        age = self._clock() - entry.fetched_at
        is_stale = age > max_age
        if is_stale:
            self._schedule_refresh(key, fetcher, on_revalidate)

        return SWRResult(
            value=entry.value,
            is_stale=is_stale,
            error=self._errors.get(key),
            age=age,
        )

    async def refetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        on_revalidate: Revalidated | None = None,
    ) -> SWRResult[T]:
        """
        Force a foreground refresh.

        Falls back to the previously committed value (stale, with the error
        attached) when the refresh fails and something is cached.
        """
        try:
            value = await self._fetch_and_commit(key, fetcher, on_revalidate)
        except Exception as e:
            entry = await self._cache.get(key)
            if entry is None:
                raise
            self._errors[key] = e
            logger.warning(f"Refetch of '{key}' failed, serving stale value: {e}")
            return SWRResult(
                value=entry.value,
                is_stale=True,
                error=e,
                age=self._clock() - entry.fetched_at,
            )
        return SWRResult(value=value, is_stale=False)

    def is_revalidating(self, key: str) -> bool:
        task = self._refreshing.get(key)
        return task is not None and not task.done()

    async def drain(self) -> None:
        """Wait for every running background refresh to settle."""
        tasks = list(self._refreshing.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def clear(self) -> None:
        """Cancel refreshes and drop all values and recorded errors."""
        for task in self._refreshing.values():
            task.cancel()
        self._refreshing.clear()
        self._errors.clear()
        await self._cache.clear()

    async def _fetch_and_commit(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        on_revalidate: Revalidated | None,
    ) -> T:
        value = await fetcher()
        await self._cache.set(key, SWREntry(value=value, fetched_at=self._clock()))
        self._errors.pop(key, None)
        if on_revalidate is not None:
            outcome = on_revalidate(value)
            if inspect.isawaitable(outcome):
                await outcome
        return value

    def _schedule_refresh(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        on_revalidate: Revalidated | None,
    ) -> None:
        if self.is_revalidating(key):
            return

        task = asyncio.ensure_future(self._revalidate(key, fetcher, on_revalidate))
        self._refreshing[key] = task

        def _forget(done: asyncio.Task) -> None:
            if self._refreshing.get(key) is done:
                del self._refreshing[key]

        task.add_done_callback(_forget)

    async def _revalidate(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        on_revalidate: Revalidated | None,
    ) -> None:
        logger.debug(f"Revalidating stale entry '{key}' in background")
        try:
            await self._fetch_and_commit(key, fetcher, on_revalidate)
        except Exception as e:
            self._errors[key] = e
            logger.warning(f"Background revalidation of '{key}' failed: {e}")
