"""Tests for upstream payload transforms."""

from __future__ import annotations

import pytest

from catalog.datasource.transform import (
    normalize_rating,
    release_year,
    transform_details,
    transform_movie,
    transform_page,
)
from catalog.services.errors import DecodeError
from tests.conftest import listing_payload, movie_payload


def resolve(path: str | None) -> str | None:
    return f"https://img/w780{path}" if path else None


class TestNormalization:
    """Tests for rating and year normalization."""

    @pytest.mark.parametrize(
        "vote_average, expected",
        [(0, 0), (None, 0), (7.0, 4), (7.8, 4), (8.0, 4), (9.0, 5), (10.0, 5), (5.0, 3)],
    )
    def test_normalize_rating(self, vote_average, expected: int) -> None:
        assert normalize_rating(vote_average) == expected

    def test_release_year(self) -> None:
        assert release_year("2010-07-16") == "2010"
        assert release_year(None) == "N/A"
        assert release_year("") == "N/A"


class TestTransformMovie:
    """Tests for transform_movie()."""

    def test_basic_fields(self) -> None:
        movie = transform_movie(movie_payload(27205, "Inception"), resolve)

        assert movie.id == 27205
        assert movie.title == "Inception"
        assert movie.year == "2020"
        assert movie.rating == 4
        assert movie.asset_url == "https://img/w780/poster27205.jpg"

    def test_missing_poster(self) -> None:
        movie = transform_movie(movie_payload(1, poster_path=None), resolve)
        assert movie.poster_path is None
        assert movie.asset_url is None

    def test_missing_id_is_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            transform_movie({"title": "No id"}, resolve)

    def test_non_object_is_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            transform_movie("oops", resolve)  # type: ignore[arg-type]


class TestTransformDetails:
    """Tests for transform_details()."""

    def test_credits_and_defaults(self) -> None:
        payload = movie_payload(
            1,
            genres=[{"name": "Drama"}, {"name": "Crime"}],
            runtime=130,
            credits={
                "cast": [{"name": f"Actor {i}"} for i in range(6)],
                "crew": [
                    {"name": "Writer", "job": "Screenplay"},
                    {"name": "The Director", "job": "Director"},
                ],
            },
        )

        details = transform_details(payload, resolve)

        assert details.genres == ("Drama", "Crime")
        assert details.runtime == 130
        assert details.cast == ("Actor 0", "Actor 1", "Actor 2", "Actor 3")
        assert details.director == "The Director"
        assert details.plot == "No plot available"
        assert details.release_date == "2020-05-01"

    def test_without_credits(self) -> None:
        details = transform_details(movie_payload(1), resolve)
        assert details.director == "Unknown"
        assert details.cast == ()


class TestTransformPage:
    """Tests for transform_page()."""

    def test_page(self) -> None:
        page = transform_page(listing_payload([1, 2], total_pages=9), 2, resolve)

        assert [m.id for m in page.items] == [1, 2]
        assert page.total_pages == 9
        assert page.current_page == 2

    def test_missing_results_is_empty(self) -> None:
        page = transform_page({}, 1, resolve, default_total_pages=0)
        assert page.items == ()
        assert page.total_pages == 0

    def test_non_object_payload(self) -> None:
        with pytest.raises(DecodeError):
            transform_page(["not", "a", "page"], 1, resolve)

    def test_results_not_a_list(self) -> None:
        with pytest.raises(DecodeError):
            transform_page({"results": "nope"}, 1, resolve)
