"""
PrefetchManager - Speculatively loads resources the user is likely to open next.

Prefetches go through the same fetch path as real requests (and therefore
the same retry executor and circuit breaker). Their failures are logged and
never surface to callers.
"""

import asyncio
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

from loguru import logger

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


class PrefetchManager(Generic[K, T]):
    """
    Tracks in-flight prefetches and their results by resource id.

    Usage:
        prefetcher = PrefetchManager(
            fetcher=lambda movie_id, signal: client.fetch_by_id(movie_id, signal),
        )
        await prefetcher.prefetch(550)
        details = prefetcher.get_prefetched(550)
    """

    def __init__(
        self,
        fetcher: Callable[[K, asyncio.Event | None], Awaitable[T]],
        is_cached: Callable[[K], Awaitable[bool]] | None = None,
    ):
        self._fetcher = fetcher
        self._is_cached = is_cached
        self._in_flight: set[K] = set()
        self._results: dict[K, T] = {}

    async def prefetch(self, resource_id: K, signal: asyncio.Event | None = None) -> T | None:
        """
        Fetch and remember ``resource_id`` unless already known or in flight.

        Returns:
            The fetched value, the previously prefetched value, or None when
            nothing was fetched (already cached, in flight, or failed).
        """
        if resource_id in self._results:
            return self._results[resource_id]

        if resource_id in self._in_flight:
            return None

        self._in_flight.add(resource_id)
        try:
            if self._is_cached is not None and await self._is_cached(resource_id):
                logger.debug(f"Prefetch skipped for {resource_id}: already cached")
                return None

            value = await self._fetcher(resource_id, signal)
            self._results[resource_id] = value
            return value
        except Exception as e:
            logger.warning(f"Prefetch failed for {resource_id}: {e}")
            return None
        finally:
            self._in_flight.discard(resource_id)

    def get_prefetched(self, resource_id: K) -> T | None:
        return self._results.get(resource_id)

    def is_prefetching(self, resource_id: K) -> bool:
        return resource_id in self._in_flight

    def clear(self) -> None:
        """Drop all prefetch bookkeeping."""
        self._in_flight.clear()
        self._results.clear()
