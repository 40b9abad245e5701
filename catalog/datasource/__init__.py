"""
Catalog data sources and result types.
"""

from catalog.datasource.base import BaseCatalogSource
from catalog.datasource.offline import OfflineCatalogSource
from catalog.datasource.tmdb import TMDBSource
from catalog.datasource.types import (
    Movie,
    MovieDetails,
    MovieId,
    MoviePage,
    TimeWindow,
)

__all__ = [
    "BaseCatalogSource",
    "OfflineCatalogSource",
    "TMDBSource",
    "Movie",
    "MovieDetails",
    "MovieId",
    "MoviePage",
    "TimeWindow",
]
