"""
CatalogClient - The data-access API the UI layer talks to.

Combines:
- CacheManager for listing/details responses
- RequestDeduplicator so overlapping callers share one request
- RetryExecutor + CircuitBreaker around every upstream call
- AdaptiveQualitySelector for poster URLs
- PrefetchManager for speculative detail loads
- TrendingFeed (stale-while-revalidate) for the trending list

This module is the only place cache keys are built.
"""

import asyncio
import hashlib
from datetime import timedelta
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from catalog.datasource.base import BaseCatalogSource
from catalog.datasource.offline import OfflineCatalogSource
from catalog.datasource.tmdb import TMDBSource
from catalog.datasource.transform import (
    transform_details,
    transform_page,
    transform_results,
)
from catalog.datasource.types import MovieDetails, MovieId, MoviePage, TimeWindow
from catalog.services.cache import CacheManager, EvictionPolicy
from catalog.services.cancellation import wait_cancellable
from catalog.services.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from catalog.services.client import ServiceClient
from catalog.services.deduplicator import RequestDeduplicator
from catalog.services.prefetch import PrefetchManager
from catalog.services.quality import (
    AdaptiveQualitySelector,
    NetworkQuality,
    QualityTier,
)
from catalog.services.retry import RetryConfig, RetryExecutor
from catalog.services.trending import TrendingFeed, TrendingResult
from catalog.settings import Settings, global_settings

T = TypeVar("T")

MAX_KEY_LENGTH = 200


class CatalogClient:
    """
    Resilient movie catalog client.

    Usage:
        async with create_catalog_client() as catalog:
            page = await catalog.fetch_page(1)
            results = await catalog.search("inception")
            details = await catalog.fetch_by_id(page.items[0].id)
            trending = await catalog.fetch_trending("week")
    """

    def __init__(
        self,
        source: BaseCatalogSource,
        cache: CacheManager,
        retry: RetryExecutor,
        deduplicator: RequestDeduplicator | None = None,
        quality: AdaptiveQualitySelector | None = None,
        trending: TrendingFeed | None = None,
        cache_ttl: timedelta = timedelta(minutes=30),
    ):
        self.source = source
        self.cache = cache
        self.retry = retry
        self.breaker = retry.breaker
        self.deduplicator = deduplicator or RequestDeduplicator()
        self.quality = quality or AdaptiveQualitySelector(
            "https://image.tmdb.org/t/p"
        )
        self.trending = trending or TrendingFeed()
        self.cache_ttl = cache_ttl
        self.prefetcher: PrefetchManager[MovieId, MovieDetails] = PrefetchManager(
            fetcher=self.fetch_by_id,
            is_cached=lambda movie_id: self.cache.has(self._details_key(movie_id)),
        )
        self._background: set[asyncio.Task] = set()

    @staticmethod
    def cache_key(endpoint: str, params: dict[str, Any] | None = None) -> str:
        """Build a deterministic key from endpoint and sorted params."""
        if params:
            sorted_params = "&".join(f"{k}={v}" for k, v in sorted(params.items()))
            full_key = f"{endpoint}:{sorted_params}"
        else:
            full_key = f"{endpoint}:"

        # Hash long keys
        if len(full_key) > MAX_KEY_LENGTH:
            hash_val = hashlib.md5(full_key.encode()).hexdigest()[:16]
            return f"{endpoint}:#{hash_val}"

        return full_key

    def _details_key(self, movie_id: MovieId) -> str:
        # Ids are opaque: 1 and "1" are different movies
        return self.cache_key("details", {"movie_id": repr(movie_id)})

    async def fetch_page(
        self, page: int = 1, signal: asyncio.Event | None = None
    ) -> MoviePage:
        """Fetch one page of popular movies."""
        return await self._load(
            self.cache_key("popular", {"page": page}),
            lambda: self.source.popular(page),
            lambda payload: transform_page(payload, page, self.quality.resolve),
            signal,
        )

    async def search(
        self, query: str, page: int = 1, signal: asyncio.Event | None = None
    ) -> MoviePage:
        """Search titles. A blank query returns an empty page without any request."""
        q = (query or "").strip()
        if not q:
            return MoviePage(items=(), total_pages=0, current_page=1)

        return await self._load(
            self.cache_key("search", {"page": page, "q": q}),
            lambda: self.source.search(q, page),
            lambda payload: transform_page(
                payload, page, self.quality.resolve, default_total_pages=0
            ),
            signal,
        )

    async def fetch_by_id(
        self, movie_id: MovieId, signal: asyncio.Event | None = None
    ) -> MovieDetails:
        """
        Fetch full movie details.

        Raises:
            NotFoundError: Unknown to both cache and upstream
        """
        return await self._load(
            self._details_key(movie_id),
            lambda: self.source.details(movie_id),
            lambda payload: transform_details(payload, self.quality.resolve),
            signal,
        )

    async def fetch_trending(
        self,
        window: TimeWindow | str = TimeWindow.WEEK,
        signal: asyncio.Event | None = None,
    ) -> TrendingResult:
        """
        Fetch trending movies, serving a stale list while it refreshes.

        Background refreshes are not tied to ``signal``; only the caller's
        foreground wait is.
        """
        window = TimeWindow(window)
        key = self.cache_key("trending", {"window": window.value})
        return await wait_cancellable(
            self.trending.get(key, self._trending_fetcher(window, key)), signal
        )

    async def refresh_trending(
        self,
        window: TimeWindow | str = TimeWindow.WEEK,
        signal: asyncio.Event | None = None,
    ) -> TrendingResult:
        """Force a foreground trending refresh."""
        window = TimeWindow(window)
        key = self.cache_key("trending", {"window": window.value})
        return await wait_cancellable(
            self.trending.refresh(key, self._trending_fetcher(window, key)), signal
        )

    def trending_is_stale(self, window: TimeWindow | str = TimeWindow.WEEK) -> bool:
        window = TimeWindow(window)
        return self.trending.is_stale(self.cache_key("trending", {"window": window.value}))

    def _trending_fetcher(self, window: TimeWindow, key: str):
        async def load():
            payload = await self.retry.execute(lambda: self.source.trending(window))
            return transform_results(payload, self.quality.resolve)

        return lambda: self.deduplicator.coalesce(key, load)

    def prefetch_by_id(
        self, movie_id: MovieId, signal: asyncio.Event | None = None
    ) -> asyncio.Task:
        """Start a fire-and-forget details prefetch. Failures are only logged."""
        task = asyncio.ensure_future(self.prefetcher.prefetch(movie_id, signal))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def get_prefetched(self, movie_id: MovieId) -> MovieDetails | None:
        return self.prefetcher.get_prefetched(movie_id)

    def resolve_asset_url(
        self,
        path: str | None,
        tier_override: QualityTier | NetworkQuality | None = None,
    ) -> str | None:
        return self.quality.resolve(path, tier_override)

    async def _load(
        self,
        key: str,
        request_fn: Callable[[], Awaitable[Any]],
        transform: Callable[[Any], T],
        signal: asyncio.Event | None,
    ) -> T:
        """Cache → coalesce → retry/breaker → transform → cache."""
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        async def load() -> T:
            payload = await self.retry.execute(request_fn)
            value = transform(payload)
            await self.cache.set(key, value, self.cache_ttl)
            return value

        return await self.deduplicator.coalesce(key, load, signal)

    # Health and status methods

    def metrics(self) -> dict[str, Any]:
        """Snapshot of breaker, cache and deduplication state."""
        return {
            "circuit_breaker": self.breaker.get_status(),
            "cache": self.cache.get_stats().to_dict(),
            "pending_keys": self.deduplicator.get_in_flight_keys(),
            "deduplicator": self.deduplicator.get_stats().to_dict(),
            "image_quality": self.quality.current_tier().name.lower(),
        }

    async def clear_all(self) -> None:
        """Reset cache, dedup bookkeeping, prefetch store and trending feed.

        Circuit breaker state is left untouched.
        """
        await self.cache.clear()
        self.deduplicator.clear()
        self.prefetcher.clear()
        await self.trending.clear()
        logger.info("Catalog caches cleared")

    async def close(self) -> None:
        """Cancel background work and release the transport."""
        for task in list(self._background):
            task.cancel()
        await self.trending.clear()
        await self.deduplicator.cancel_all()
        await self.source.close()
        logger.debug("CatalogClient closed")

    async def __aenter__(self) -> "CatalogClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


def create_catalog_client(
    settings: Settings | None = None,
    source: BaseCatalogSource | None = None,
) -> CatalogClient:
    """
    Composition root: build a CatalogClient and all its collaborators.

    Uses TMDB when an API key is configured, the offline catalog otherwise.
    """
    settings = settings or global_settings

    if source is None:
        if settings.tmdb_api_key:
            source = TMDBSource(
                api_key=settings.tmdb_api_key,
                client=ServiceClient(timeout=settings.request_timeout),
                base_url=settings.tmdb_base_url,
                language=settings.tmdb_language,
            )
        else:
            source = OfflineCatalogSource()

    policy = EvictionPolicy(settings.cache_policy)
    if policy == EvictionPolicy.FIFO:
        cache: CacheManager = CacheManager(
            policy=policy,
            max_entries=settings.cache_max_entries,
            max_size_bytes=None,
            default_ttl=timedelta(seconds=settings.cache_ttl),
            debug=settings.debug,
        )
    else:
        cache = CacheManager(
            policy=policy,
            max_size_bytes=settings.cache_max_bytes,
            default_ttl=timedelta(seconds=settings.cache_ttl),
            debug=settings.debug,
        )

    breaker = CircuitBreaker(
        source.service_id,
        CircuitBreakerConfig(
            failure_threshold=settings.circuit_breaker_threshold,
            cooldown=timedelta(seconds=settings.circuit_breaker_cooldown),
        ),
    )
    retry = RetryExecutor(
        breaker,
        RetryConfig(
            max_retries=settings.max_retries,
            timeout=timedelta(seconds=settings.request_timeout),
            initial_delay=timedelta(seconds=settings.retry_initial_delay),
            max_delay=timedelta(seconds=settings.retry_max_delay),
        ),
    )

    return CatalogClient(
        source=source,
        cache=cache,
        retry=retry,
        deduplicator=RequestDeduplicator(debug=settings.debug),
        quality=AdaptiveQualitySelector(settings.tmdb_image_base_url),
        trending=TrendingFeed(max_age=timedelta(seconds=settings.trending_max_age)),
        cache_ttl=timedelta(seconds=settings.cache_ttl),
    )
