"""
Service layer infrastructure - resilience patterns for catalog API calls.

Provides:
- CacheManager: Bounded FIFO/LRU cache with TTL
- CircuitBreaker: Stops calling a failing upstream
- RetryExecutor: Timeout, backoff and jitter around one operation
- RequestDeduplicator: Coalesces concurrent requests
- AdaptiveQualitySelector: Network-aware poster resolution
- PrefetchManager: Speculative detail loads
- StaleWhileRevalidateStore / TrendingFeed: Serve stale, refresh in background
"""

from catalog.services.errors import (
    ServiceError,
    NetworkTransportError,
    RequestTimeoutError,
    RequestCancelledError,
    CircuitOpenError,
    UpstreamRejectedError,
    NotFoundError,
    DecodeError,
    describe_error,
)
from catalog.services.cache import CacheManager, CacheEntry, CacheStats, EvictionPolicy
from catalog.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from catalog.services.retry import RetryConfig, RetryExecutor
from catalog.services.deduplicator import RequestDeduplicator
from catalog.services.quality import (
    AdaptiveQualitySelector,
    NetworkQuality,
    QualityTier,
)
from catalog.services.prefetch import PrefetchManager
from catalog.services.swr import StaleWhileRevalidateStore, SWRResult
from catalog.services.trending import TrendingFeed, TrendingResult, TrendingSnapshot
from catalog.services.client import ServiceClient

__all__ = [
    # Errors
    "ServiceError",
    "NetworkTransportError",
    "RequestTimeoutError",
    "RequestCancelledError",
    "CircuitOpenError",
    "UpstreamRejectedError",
    "NotFoundError",
    "DecodeError",
    "describe_error",
    # Cache
    "CacheManager",
    "CacheEntry",
    "CacheStats",
    "EvictionPolicy",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    # Retry
    "RetryConfig",
    "RetryExecutor",
    # Deduplicator
    "RequestDeduplicator",
    # Image quality
    "AdaptiveQualitySelector",
    "NetworkQuality",
    "QualityTier",
    # Prefetch
    "PrefetchManager",
    # Stale-while-revalidate
    "StaleWhileRevalidateStore",
    "SWRResult",
    "TrendingFeed",
    "TrendingResult",
    "TrendingSnapshot",
    # Client
    "ServiceClient",
]
