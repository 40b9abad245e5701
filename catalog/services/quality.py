"""
AdaptiveQualitySelector - Picks poster resolution from observed network quality.

The selector owns its observers. Tier changes are announced by scheduling
each callback on the running event loop, so a slow observer never delays a
request that is already in flight.
"""

import asyncio
from enum import Enum
from typing import Callable

from loguru import logger


class NetworkQuality(str, Enum):
    """Categorical network-quality signal."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class QualityTier(str, Enum):
    """Asset resolution tier, valued by the upstream image size token."""

    HD = "w780"
    STANDARD = "w500"
    COMPRESSED = "w342"


QUALITY_TIERS: dict[NetworkQuality, QualityTier] = {
    NetworkQuality.HIGH: QualityTier.HD,
    NetworkQuality.MEDIUM: QualityTier.STANDARD,
    NetworkQuality.LOW: QualityTier.COMPRESSED,
}

# Connection "effective type" values reported by the client runtime
FAST_CONNECTIONS = {"4g", "5g"}
MEDIUM_CONNECTIONS = {"3g"}

TierObserver = Callable[[QualityTier], None]


def quality_from_connection(effective_type: str) -> NetworkQuality:
    """Map a connection effective type (``"4g"``, ``"3g"``, ...) to a quality."""
    effective_type = effective_type.lower()
    if effective_type in FAST_CONNECTIONS:
        return NetworkQuality.HIGH
    if effective_type in MEDIUM_CONNECTIONS:
        return NetworkQuality.MEDIUM
    return NetworkQuality.LOW


class AdaptiveQualitySelector:
    """
    Resolves poster path fragments to absolute URLs for the current tier.

    Usage:
        selector = AdaptiveQualitySelector("https://image.tmdb.org/t/p")
        unsubscribe = selector.subscribe(lambda tier: redraw(tier))
        selector.update_from_connection("3g")
        selector.resolve("/abc.jpg")  # .../w500/abc.jpg
    """

    def __init__(
        self,
        image_base_url: str,
        quality: NetworkQuality = NetworkQuality.HIGH,
    ):
        self.image_base_url = image_base_url.rstrip("/")
        self._quality = NetworkQuality(quality)
        self._observers: list[TierObserver] = []

    def current_quality(self) -> NetworkQuality:
        return self._quality

    def current_tier(self) -> QualityTier:
        return QUALITY_TIERS[self._quality]

    def resolve(
        self,
        path: str | None,
        override: QualityTier | NetworkQuality | None = None,
    ) -> str | None:
        """
        Build the absolute asset URL, or None when there is no path.

        ``override`` forces a tier, either directly or through the quality
        level that maps to it.
        """
        if not path:
            return None
        if isinstance(override, NetworkQuality):
            tier = QUALITY_TIERS[override]
        else:
            tier = override or self.current_tier()
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.image_base_url}/{tier.value}{path}"

    def update(self, quality: NetworkQuality) -> None:
        """Record a new quality observation and notify if the tier changed."""
        quality = NetworkQuality(quality)
        previous_tier = self.current_tier()
        self._quality = quality
        tier = self.current_tier()
        if tier != previous_tier:
            logger.info(f"Image quality tier changed: {previous_tier.name} -> {tier.name}")
            self._notify(tier)

    def update_from_connection(self, effective_type: str | None) -> None:
        """Feed connection metadata; None means "unknown" and is ignored."""
        if effective_type is None:
            return
        self.update(quality_from_connection(effective_type))

    def subscribe(self, observer: TierObserver) -> Callable[[], None]:
        """Register an observer. Returns a function that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self, tier: QualityTier) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        for observer in list(self._observers):
            if loop is not None:
                loop.call_soon(self._call_observer, observer, tier)
            else:
                self._call_observer(observer, tier)

    @staticmethod
    def _call_observer(observer: TierObserver, tier: QualityTier) -> None:
        try:
            observer(tier)
        except Exception as e:
            logger.warning(f"Image quality observer {observer!r} failed: {e}")
