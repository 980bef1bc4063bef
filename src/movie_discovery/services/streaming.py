"""Watch provider resolution: which streaming service to send a user to."""

import logging
from typing import Callable
from urllib.parse import quote

from attrs import define, field

from ..errors import MovieApiError
from ..models.providers import ProviderOffer, RegionAvailability, WatchLink
from .tmdb import TMDbService

logger = logging.getLogger(__name__)

PREFERRED_REGIONS = ("US", "GB", "CA", "IN", "AU")

# subscription, then rental, then purchase
OFFER_TIERS = ("flatrate", "rent", "buy")

PROVIDER_HOMEPAGES = {
    8: "https://www.netflix.com",
    9: "https://www.primevideo.com",
    337: "https://www.disneyplus.com",
    15: "https://www.hulu.com",
    350: "https://tv.apple.com",
    384: "https://www.hbomax.com",
    531: "https://www.paramountplus.com",
    387: "https://www.peacocktv.com",
}

PROVIDER_SEARCH_URLS = {
    8: "https://www.netflix.com/search?q={title}",
    9: "https://www.primevideo.com/search?phrase={title}",
    337: "https://www.disneyplus.com/search?q={title}",
    15: "https://www.hulu.com/search?q={title}",
    350: "https://tv.apple.com/search?q={title}",
}

WEB_SEARCH_URL = "https://www.google.com/search?q={query}"


def web_search_url(title: str) -> str:
    """Generic search link used when no provider can be resolved."""
    return WEB_SEARCH_URL.format(query=quote(f"{title} watch online streaming", safe=""))


@define
class WatchProviderResolver:
    """Picks a region, an offer tier and a URL for a movie's watch providers."""

    tmdb: TMDbService
    regions: tuple[str, ...] = PREFERRED_REGIONS
    tiers: tuple[str, ...] = OFFER_TIERS
    search_urls: dict[int, str] = field(factory=lambda: dict(PROVIDER_SEARCH_URLS))
    homepages: dict[int, str] = field(factory=lambda: dict(PROVIDER_HOMEPAGES))

    def select_region(self, payload: dict) -> tuple[str, RegionAvailability] | None:
        for region in self.regions:
            if payload.get(region) is not None:
                return region, RegionAvailability.from_payload(payload[region])
        return None

    def _url_strategies(
        self, availability: RegionAvailability, provider_id: int, title: str
    ) -> list[Callable[[], str | None]]:
        return [
            lambda: availability.link,
            lambda: (
                self.search_urls[provider_id].format(title=quote(title, safe=""))
                if provider_id in self.search_urls
                else None
            ),
            lambda: self.homepages.get(provider_id),
        ]

    def resolve(self, payload: dict, title: str) -> ProviderOffer | None:
        """Resolve a provider offer from an availability payload.

        Returns None when no preferred region, no offers, or no usable URL is
        found for the primary provider.
        """
        selected = self.select_region(payload)
        if selected is None:
            logger.info("No watch providers found for any preferred region")
            return None
        region, availability = selected

        offers = next((o for o in map(availability.tier, self.tiers) if o), None)
        if not offers:
            logger.info("No streaming offers available in %s", region)
            return None
        primary = offers[0]

        for strategy in self._url_strategies(availability, primary.provider_id, title):
            url = strategy()
            if url:
                return ProviderOffer(
                    url=url, provider_name=primary.provider_name, region=region
                )

        logger.info(
            "No URL known for provider %s (%s)",
            primary.provider_name,
            primary.provider_id,
        )
        return None

    async def find_offer(self, movie_id: int | str, title: str) -> ProviderOffer | None:
        payload = await self.tmdb.get_watch_provider_payload(movie_id)
        return self.resolve(payload, title)

    async def where_to_watch(self, movie_id: int | str, title: str) -> WatchLink:
        """Provider link for a movie, or a web search link if none resolves."""
        try:
            offer = await self.find_offer(movie_id, title)
        except MovieApiError as e:
            logger.warning("Watch provider lookup failed for %s: %s", movie_id, e)
            offer = None

        if offer is None:
            return WatchLink(url=web_search_url(title))
        return WatchLink(
            url=offer.url, provider_name=offer.provider_name, region=offer.region
        )
