"""
TrendingFeed - Stale-while-revalidate trending list with "what's new" diffing.

Every successful refresh becomes a new snapshot linked to the one before
it. ``new_item_ids`` lists the ids in the latest snapshot that were absent
from the previous one, and is only meaningful until the next refresh.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Sequence

from loguru import logger

from catalog.datasource.types import Movie, MovieId
from catalog.services.swr import StaleWhileRevalidateStore


@dataclass
class TrendingSnapshot:
    """One successful trending fetch."""

    results: tuple[Movie, ...]
    fetched_at: datetime
    previous: "TrendingSnapshot | None" = None

    def new_item_ids(self) -> list[MovieId]:
        """Ids not present in the previous snapshot, in relevance order."""
        if self.previous is None:
            return []
        previous_ids = {movie.id for movie in self.previous.results}
        return [movie.id for movie in self.results if movie.id not in previous_ids]


@dataclass(frozen=True)
class TrendingResult:
    """What callers get back from a trending read."""

    items: tuple[Movie, ...]
    new_item_ids: list[MovieId] = field(default_factory=list)
    is_stale: bool = False
    error: Exception | None = None

    @property
    def recently_updated(self) -> bool:
        return bool(self.new_item_ids)


class TrendingFeed:
    """
    Trending specialisation of StaleWhileRevalidateStore.

    Usage:
        feed = TrendingFeed(max_age=timedelta(minutes=5))
        result = await feed.get("trending:window=week", fetch_trending)
        highlight(result.new_item_ids)
    """

    def __init__(
        self,
        store: StaleWhileRevalidateStore[tuple[Movie, ...]] | None = None,
        max_age: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.max_age = max_age
        self._clock = clock
        self._store = store or StaleWhileRevalidateStore(clock=clock)
        self._snapshots: dict[str, TrendingSnapshot] = {}

    async def get(
        self, key: str, fetcher: Callable[[], Awaitable[Sequence[Movie]]]
    ) -> TrendingResult:
        """Serve the latest snapshot, revalidating in the background when stale."""
        result = await self._store.get(
            key,
            self._as_tuple(fetcher),
            self.max_age,
            on_revalidate=lambda items: self._rotate(key, items),
        )
        return self._build(key, result.value, result.is_stale, result.error)

    async def refresh(
        self, key: str, fetcher: Callable[[], Awaitable[Sequence[Movie]]]
    ) -> TrendingResult:
        """Fetch in the foreground, falling back to the current snapshot on failure."""
        result = await self._store.refetch(
            key,
            self._as_tuple(fetcher),
            on_revalidate=lambda items: self._rotate(key, items),
        )
        return self._build(key, result.value, result.is_stale, result.error)

    def snapshot(self, key: str) -> TrendingSnapshot | None:
        return self._snapshots.get(key)

    def is_stale(self, key: str) -> bool:
        snapshot = self._snapshots.get(key)
        return snapshot is None or self._clock() - snapshot.fetched_at > self.max_age

    async def drain(self) -> None:
        """Wait for background refreshes to settle."""
        await self._store.drain()

    async def clear(self) -> None:
        self._snapshots.clear()
        await self._store.clear()

    @staticmethod
    def _as_tuple(
        fetcher: Callable[[], Awaitable[Sequence[Movie]]],
    ) -> Callable[[], Awaitable[tuple[Movie, ...]]]:
        async def fetch() -> tuple[Movie, ...]:
            items = await fetcher()
            # Tuples pass through unchanged; _rotate compares by identity
            return items if isinstance(items, tuple) else tuple(items)

        return fetch

    def _rotate(self, key: str, items: tuple[Movie, ...]) -> None:
        previous = self._snapshots.get(key)
        if previous is not None and previous.results is items:
            # One coalesced fetch committed by a second refresh path
            return
        if previous is not None:
            # Only the immediately preceding snapshot is kept for diffing
            previous.previous = None
        snapshot = TrendingSnapshot(
            results=items, fetched_at=self._clock(), previous=previous
        )
        self._snapshots[key] = snapshot

        new_ids = snapshot.new_item_ids()
        if new_ids:
            logger.info(f"Trending '{key}' refreshed with {len(new_ids)} new titles")

    def _build(
        self,
        key: str,
        items: tuple[Movie, ...],
        is_stale: bool,
        error: Exception | None,
    ) -> TrendingResult:
        snapshot = self._snapshots.get(key)
        new_ids = snapshot.new_item_ids() if snapshot is not None else []
        return TrendingResult(
            items=items, new_item_ids=new_ids, is_stale=is_stale, error=error
        )
