"""
Offline catalog source used when no TMDB API key is configured.

Serves a small built-in catalog in the upstream payload shape so the same
transforms apply and the app stays usable without credentials.
"""

from typing import Any

from loguru import logger

from catalog.datasource.base import BaseCatalogSource
from catalog.datasource.types import MovieId, TimeWindow
from catalog.services.errors import NotFoundError

OFFLINE_MOVIES: dict[str, dict[str, Any]] = {
    "1": {
        "id": "1",
        "title": "Inception",
        "release_date": "2010-07-16",
        "vote_average": 10.0,
        "poster_path": None,
        "genres": [{"name": "Sci-Fi"}, {"name": "Thriller"}, {"name": "Action"}],
        "runtime": 148,
        "overview": (
            "A skilled thief who steals corporate secrets through dream-sharing "
            "technology is given the inverse task of planting an idea."
        ),
        "credits": {
            "cast": [
                {"name": "Leonardo DiCaprio"},
                {"name": "Ellen Page"},
                {"name": "Joseph Gordon-Levitt"},
                {"name": "Marion Cotillard"},
            ],
            "crew": [{"name": "Christopher Nolan", "job": "Director"}],
        },
    },
    "2": {
        "id": "2",
        "title": "Interstellar",
        "release_date": "2014-11-07",
        "vote_average": 8.0,
        "poster_path": None,
        "genres": [{"name": "Sci-Fi"}, {"name": "Adventure"}, {"name": "Drama"}],
        "runtime": 169,
        "overview": (
            "A team of explorers travel through a wormhole in an attempt to "
            "ensure humanity's survival."
        ),
        "credits": {
            "cast": [
                {"name": "Matthew McConaughey"},
                {"name": "Anne Hathaway"},
                {"name": "Jessica Chastain"},
                {"name": "Bill Irwin"},
            ],
            "crew": [{"name": "Christopher Nolan", "job": "Director"}],
        },
    },
    "3": {
        "id": "3",
        "title": "The Dark Knight",
        "release_date": "2008-07-18",
        "vote_average": 10.0,
        "poster_path": None,
        "genres": [{"name": "Action"}, {"name": "Crime"}, {"name": "Thriller"}],
        "runtime": 152,
        "overview": (
            "When the menace known as the Joker wreaks havoc on Gotham, Batman "
            "must accept one of the greatest psychological tests."
        ),
        "credits": {
            "cast": [
                {"name": "Christian Bale"},
                {"name": "Heath Ledger"},
                {"name": "Aaron Eckhart"},
                {"name": "Maggie Gyllenhaal"},
            ],
            "crew": [{"name": "Christopher Nolan", "job": "Director"}],
        },
    },
}


def _listing(movies: list[dict[str, Any]]) -> dict[str, Any]:
    return {"page": 1, "results": movies, "total_pages": 1}


class OfflineCatalogSource(BaseCatalogSource):
    """Built-in three-title catalog."""

    SERVICE_ID = "offline"

    def __init__(self, movies: dict[str, dict[str, Any]] | None = None):
        self.movies = movies if movies is not None else OFFLINE_MOVIES
        logger.info("TMDB API key not configured, using offline catalog")

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def is_configured(self) -> bool:
        return True

    async def popular(self, page: int) -> dict[str, Any]:
        return _listing(list(self.movies.values()))

    async def search(self, query: str, page: int) -> dict[str, Any]:
        needle = query.lower()
        return _listing(
            [m for m in self.movies.values() if needle in (m.get("title") or "").lower()]
        )

    async def trending(self, window: TimeWindow) -> dict[str, Any]:
        return _listing(list(self.movies.values()))

    async def details(self, movie_id: MovieId) -> dict[str, Any]:
        movie = self.movies.get(str(movie_id))
        if movie is None:
            raise NotFoundError(
                f"Movie '{movie_id}' is not in the offline catalog",
                service_id=self.SERVICE_ID,
            )
        return movie
