"""Data models for Movie Discovery."""

from .providers import ProviderOffer, RegionAvailability, WatchLink, WatchProvider
from .tmdb import Genre, MovieDetails, MovieSummary, ProductionCompany
from .trending import TrendingRecord

__all__ = [
    "Genre",
    "MovieDetails",
    "MovieSummary",
    "ProductionCompany",
    "ProviderOffer",
    "RegionAvailability",
    "TrendingRecord",
    "WatchLink",
    "WatchProvider",
]
