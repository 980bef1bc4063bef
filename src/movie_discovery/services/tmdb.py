"""TMDb API service for discovery, search, details and watch providers."""

import logging
from urllib.parse import quote

import httpx
from attrs import define

from ..config import Settings
from ..errors import (
    NetworkError,
    NotFound,
    ParseError,
    RemoteError,
    RequestTimeout,
)
from ..models.tmdb import Genre, MovieDetails, MovieSummary, ProductionCompany

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


@define
class TMDbService:
    """Client for TMDb API, optionally routed through the forwarding proxy.

    When ``use_proxy`` is set, ``base_url`` points at the proxy and no
    credential is sent; the proxy attaches its own.
    """

    base_url: str
    read_access_token: str | None = None
    use_proxy: bool = False
    timeout: float = DEFAULT_TIMEOUT
    transport: httpx.AsyncBaseTransport | None = None
    _client: httpx.AsyncClient | None = None

    def __attrs_post_init__(self) -> None:
        if not self.use_proxy and not self.read_access_token:
            raise ValueError("A TMDb read access token is required without the proxy")

    @classmethod
    def from_settings(cls, settings: Settings) -> "TMDbService":
        return cls(
            base_url=settings.api_base_url,
            read_access_token=settings.tmdb_read_access_token,
            use_proxy=settings.use_proxy,
            timeout=settings.request_timeout,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {}
            if not self.use_proxy:
                headers = {
                    "Authorization": f"Bearer {self.read_access_token}",
                    "Accept": "application/json",
                }
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, path: str, resource: str | None = None) -> dict:
        """GET ``path`` and decode the JSON body.

        ``resource`` names the id-specific entity being fetched; a 404 for it
        raises NotFound instead of RemoteError.
        """
        client = await self._get_client()
        try:
            resp = await client.get(path)
        except httpx.TimeoutException as e:
            raise RequestTimeout(f"Request to {path} timed out") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Request to {path} failed: {e}") from e

        if resource is not None and resp.status_code == 404:
            raise NotFound(resource)
        if not resp.is_success:
            logger.warning("TMDb returned %s for %s", resp.status_code, path)
            raise RemoteError(resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise ParseError(f"Malformed JSON from {path}") from e
        if not isinstance(data, dict):
            raise ParseError(f"Expected a JSON object from {path}")
        return data

    async def discover_or_search(self, query: str = "") -> list[MovieSummary]:
        """Popular movies for an empty query, otherwise a title search."""
        if query:
            path = f"/search/movie?query={quote(query, safe='')}"
        else:
            path = "/discover/movie?sort_by=popularity.desc"

        data = await self._request(path)
        results = data.get("results") or []
        logger.debug("Fetched %d movies from %s", len(results), path)
        try:
            return [self._parse_summary(item) for item in results]
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError(f"Unexpected movie list shape: {e}") from e

    async def get_details(self, movie_id: int | str) -> MovieDetails:
        """Fetch the full detail record for a movie."""
        data = await self._request(f"/movie/{movie_id}", resource=f"movie {movie_id}")
        try:
            return self._parse_details(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError(f"Unexpected movie details shape: {e}") from e

    async def get_watch_provider_payload(self, movie_id: int | str) -> dict:
        """Return the per-region availability mapping for a movie."""
        data = await self._request(
            f"/movie/{movie_id}/watch/providers",
            resource=f"watch providers for movie {movie_id}",
        )
        results = data.get("results") or {}
        if not isinstance(results, dict):
            raise ParseError("Expected watch provider results to be an object")
        return results

    def _parse_summary(self, item: dict) -> MovieSummary:
        return MovieSummary(
            id=int(item["id"]),
            title=item.get("title", ""),
            poster_path=item.get("poster_path"),
            vote_average=float(item.get("vote_average") or 0.0),
            release_date=item.get("release_date") or "",
        )

    def _parse_details(self, data: dict) -> MovieDetails:
        return MovieDetails(
            id=int(data["id"]),
            title=data.get("title", ""),
            poster_path=data.get("poster_path"),
            vote_average=float(data.get("vote_average") or 0.0),
            release_date=data.get("release_date") or "",
            runtime=data.get("runtime"),
            overview=data.get("overview") or "",
            genres=[Genre(id=g["id"], name=g["name"]) for g in data.get("genres", [])],
            budget=data.get("budget") or 0,
            revenue=data.get("revenue") or 0,
            production_companies=[
                ProductionCompany(id=c["id"], name=c["name"])
                for c in data.get("production_companies", [])
            ],
            vote_count=data.get("vote_count") or 0,
        )
