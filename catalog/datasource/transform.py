"""
Upstream payload → catalog model transforms.

Only the fields the catalog relies on are read: an id, a title, an optional
poster path, a 0-10 vote average and an optional release date. Anything
that prevents building a model is reported as DecodeError.
"""

import math
from typing import Any, Callable

from pydantic import ValidationError

from catalog.datasource.types import Movie, MovieDetails, MoviePage
from catalog.services.errors import DecodeError

AssetResolver = Callable[[str | None], str | None]

MAX_CAST = 4


def normalize_rating(vote_average: Any) -> int:
    """Halve a 0-10 vote average onto a 0-5 scale, rounding halves up."""
    return math.floor(float(vote_average or 0) / 2 + 0.5)


def release_year(release_date: str | None) -> str:
    if not release_date:
        return "N/A"
    return release_date.split("-")[0]


def _movie_fields(item: dict[str, Any], resolve: AssetResolver) -> dict[str, Any]:
    if not isinstance(item, dict):
        raise DecodeError(f"Expected a movie object, got {type(item).__name__}")
    if item.get("id") is None:
        raise DecodeError("Movie payload has no id")

    poster_path = item.get("poster_path") or None
    return {
        "id": item["id"],
        "title": item.get("title") or item.get("original_title") or "Untitled",
        "year": release_year(item.get("release_date")),
        "rating": normalize_rating(item.get("vote_average")),
        "poster_path": poster_path,
        "asset_url": resolve(poster_path),
    }


def transform_movie(item: dict[str, Any], resolve: AssetResolver) -> Movie:
    try:
        return Movie(**_movie_fields(item, resolve))
    except (ValidationError, TypeError, ValueError) as e:
        raise DecodeError(f"Malformed movie payload: {e}") from e


def transform_details(item: dict[str, Any], resolve: AssetResolver) -> MovieDetails:
    """Build MovieDetails from a details payload with appended credits."""
    try:
        fields = _movie_fields(item, resolve)
        credits = item.get("credits") or {}
        directors = [
            c.get("name") for c in credits.get("crew") or [] if c.get("job") == "Director"
        ]
        return MovieDetails(
            **fields,
            genres=tuple(g["name"] for g in item.get("genres") or []),
            runtime=item.get("runtime") or 0,
            plot=item.get("overview") or "No plot available",
            cast=tuple(c["name"] for c in (credits.get("cast") or [])[:MAX_CAST]),
            director=directors[0] if directors and directors[0] else "Unknown",
            budget=item.get("budget") or 0,
            revenue=item.get("revenue") or 0,
            release_date=item.get("release_date") or "N/A",
        )
    except DecodeError:
        raise
    except (ValidationError, TypeError, ValueError, KeyError, AttributeError) as e:
        raise DecodeError(f"Malformed movie details payload: {e}") from e


def transform_results(payload: Any, resolve: AssetResolver) -> tuple[Movie, ...]:
    """Transform the ``results`` array of a listing payload."""
    if not isinstance(payload, dict):
        raise DecodeError(f"Expected a listing object, got {type(payload).__name__}")
    results = payload.get("results") or []
    if not isinstance(results, list):
        raise DecodeError("Listing payload 'results' is not an array")
    return tuple(transform_movie(item, resolve) for item in results)


def transform_page(
    payload: Any,
    page: int,
    resolve: AssetResolver,
    default_total_pages: int = 1,
) -> MoviePage:
    items = transform_results(payload, resolve)
    total_pages = payload.get("total_pages") or default_total_pages
    try:
        return MoviePage(items=items, total_pages=total_pages, current_page=page)
    except ValidationError as e:
        raise DecodeError(f"Malformed listing payload: {e}") from e
