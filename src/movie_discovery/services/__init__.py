"""Service layer for external API integrations."""

from .streaming import WatchProviderResolver
from .tmdb import TMDbService
from .trending import AppwriteTrendingStore, TrendingService, rank_trending

__all__ = [
    "AppwriteTrendingStore",
    "TMDbService",
    "TrendingService",
    "WatchProviderResolver",
    "rank_trending",
]
