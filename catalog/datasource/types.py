"""
Catalog result types using Pydantic models.

Models are frozen and collections are tuples, so values handed out from the
cache cannot be mutated by callers.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

MovieId = int | str


class TimeWindow(str, Enum):
    """Trending time window."""

    DAY = "day"
    WEEK = "week"


class Movie(BaseModel):
    """Movie summary as shown in grids and lists."""

    model_config = ConfigDict(frozen=True)

    id: MovieId
    title: str
    year: str  # 4-digit year or "N/A"
    rating: int  # 0-5 stars
    poster_path: str | None = None
    asset_url: str | None = None


class MovieDetails(Movie):
    """Full movie record for the details view."""

    genres: tuple[str, ...] = ()
    runtime: int = 0
    plot: str = "No plot available"
    cast: tuple[str, ...] = ()
    director: str = "Unknown"
    budget: int = 0
    revenue: int = 0
    release_date: str = "N/A"


class MoviePage(BaseModel):
    """One page of a paginated listing."""

    model_config = ConfigDict(frozen=True)

    items: tuple[Movie, ...] = ()
    total_pages: int = 0
    current_page: int = 1
