"""
TMDB API catalog source.

API Documentation: https://developer.themoviedb.org/reference/intro/getting-started
Get API key at: https://www.themoviedb.org/settings/api
"""

from typing import Any

from catalog.datasource.base import BaseCatalogSource
from catalog.datasource.types import MovieId, TimeWindow
from catalog.services.client import ServiceClient


class TMDBSource(BaseCatalogSource):
    """
    TMDB movie endpoints: popular, search, trending and details.
    """

    BASE_URL = "https://api.themoviedb.org/3"
    SERVICE_ID = "tmdb"

    def __init__(
        self,
        api_key: str,
        client: ServiceClient | None = None,
        base_url: str | None = None,
        language: str = "en-US",
    ):
        self.api_key = api_key
        self.client = client or ServiceClient()
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.language = language

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, **params: Any) -> dict[str, Any]:
        return await self.client.get_json(
            service_id=self.SERVICE_ID,
            url=f"{self.base_url}{path}",
            params={"api_key": self.api_key, "language": self.language, **params},
        )

    async def popular(self, page: int) -> dict[str, Any]:
        return await self._get("/movie/popular", page=page)

    async def search(self, query: str, page: int) -> dict[str, Any]:
        return await self._get("/search/movie", query=query, page=page)

    async def trending(self, window: TimeWindow) -> dict[str, Any]:
        return await self._get(f"/trending/movie/{TimeWindow(window).value}")

    async def details(self, movie_id: MovieId) -> dict[str, Any]:
        return await self._get(f"/movie/{movie_id}", append_to_response="credits")

    async def close(self) -> None:
        await self.client.close()
