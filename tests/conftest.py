"""
Pytest configuration and shared fixtures for catalog tests.
"""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timedelta
from typing import Any

import pytest

# Keep tests on the offline catalog unless a test opts in to TMDB
os.environ["TMDB_API_KEY"] = ""

from catalog.datasource.base import BaseCatalogSource  # noqa: E402
from catalog.datasource.types import MovieId, TimeWindow  # noqa: E402
from catalog.services.errors import NotFoundError, ServiceError  # noqa: E402


class FakeClock:
    """Manually advanced clock for TTL and cooldown tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def movie_payload(movie_id: int, title: str | None = None, **extra: Any) -> dict[str, Any]:
    """Build an upstream-shaped movie object."""
    payload = {
        "id": movie_id,
        "title": title or f"Movie {movie_id}",
        "release_date": "2020-05-01",
        "vote_average": 7.0,
        "poster_path": f"/poster{movie_id}.jpg",
    }
    payload.update(extra)
    return payload


def listing_payload(ids: list[int], total_pages: int = 3) -> dict[str, Any]:
    return {
        "page": 1,
        "results": [movie_payload(i) for i in ids],
        "total_pages": total_pages,
    }


class FakeSource(BaseCatalogSource):
    """In-memory source that counts upstream calls and can be told to fail."""

    def __init__(self):
        self.calls: dict[str, int] = {"popular": 0, "search": 0, "trending": 0, "details": 0}
        self.trending_ids: list[int] = [1, 2, 3]
        self.failures: list[ServiceError] = []
        self.delay: float = 0.0
        self.closed = False

    @property
    def service_id(self) -> str:
        return "fake"

    def is_configured(self) -> bool:
        return True

    async def _respond(self, name: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls[name] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures:
            raise self.failures.pop(0)
        return payload

    async def popular(self, page: int) -> dict[str, Any]:
        return await self._respond("popular", listing_payload([page * 10 + 1, page * 10 + 2]))

    async def search(self, query: str, page: int) -> dict[str, Any]:
        return await self._respond("search", listing_payload([42], total_pages=1))

    async def trending(self, window: TimeWindow) -> dict[str, Any]:
        return await self._respond("trending", listing_payload(list(self.trending_ids)))

    async def details(self, movie_id: MovieId) -> dict[str, Any]:
        if str(movie_id) == "404":
            self.calls["details"] += 1
            raise NotFoundError("no such movie", service_id=self.service_id)
        payload = movie_payload(
            int(movie_id),
            genres=[{"name": "Drama"}],
            runtime=120,
            overview="A plot.",
            credits={
                "cast": [{"name": f"Actor {i}"} for i in range(6)],
                "crew": [{"name": "Someone", "job": "Director"}],
            },
        )
        return await self._respond("details", payload)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()
