"""
Base catalog source interface.
"""

from abc import ABC, abstractmethod
from typing import Any

from catalog.datasource.types import MovieId, TimeWindow


class BaseCatalogSource(ABC):
    """
    Abstract base class for upstream catalog sources.

    A source performs one attempt per call and returns the raw upstream
    JSON payload. Failures are raised as ServiceError subclasses so the
    retry executor can classify them.
    """

    @property
    @abstractmethod
    def service_id(self) -> str:
        """Identifier of the endpoint class (one circuit breaker per id)."""
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if the source is properly configured."""
        ...

    @abstractmethod
    async def popular(self, page: int) -> dict[str, Any]:
        """Fetch one page of popular movies."""
        ...

    @abstractmethod
    async def search(self, query: str, page: int) -> dict[str, Any]:
        """Fetch one page of title search results."""
        ...

    @abstractmethod
    async def trending(self, window: TimeWindow) -> dict[str, Any]:
        """Fetch trending movies for a time window."""
        ...

    @abstractmethod
    async def details(self, movie_id: MovieId) -> dict[str, Any]:
        """Fetch full details (with credits) for one movie."""
        ...

    async def close(self) -> None:
        """Release transport resources."""
        return None
