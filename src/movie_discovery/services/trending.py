"""Trending searches: Appwrite-backed counters and read-time ranking."""

import json
import logging
from typing import Iterable

import httpx
from attrs import define

from ..config import Settings
from ..errors import TrendingStoreError
from ..models.tmdb import MovieSummary
from ..models.trending import TrendingRecord

logger = logging.getLogger(__name__)

TRENDING_LIMIT = 5
FETCH_LIMIT = 100


def rank_trending(
    records: Iterable[TrendingRecord], limit: int = TRENDING_LIMIT
) -> list[TrendingRecord]:
    """Collapse duplicate movie ids to their highest count and keep the top ``limit``.

    Concurrent writers can leave more than one document per movie. On equal
    counts the first record seen is kept; ties in the final order keep
    encounter order.
    """
    unique: dict[int, TrendingRecord] = {}
    for record in records:
        kept = unique.get(record.movie_id)
        if kept is None or record.count > kept.count:
            unique[record.movie_id] = record

    ranked = sorted(unique.values(), key=lambda r: r.count, reverse=True)
    return ranked[:limit]


def _query(method: str, attribute: str | None = None, values: list | None = None) -> str:
    query: dict = {"method": method}
    if attribute is not None:
        query["attribute"] = attribute
    if values is not None:
        query["values"] = values
    return json.dumps(query, separators=(",", ":"))


@define
class AppwriteTrendingStore:
    """Client for the Appwrite documents collection holding search counts."""

    endpoint: str
    project_id: str
    database_id: str
    collection_id: str
    api_key: str | None = None
    transport: httpx.AsyncBaseTransport | None = None
    _client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppwriteTrendingStore":
        return cls(
            endpoint=settings.appwrite_endpoint,
            project_id=settings.appwrite_project_id,
            database_id=settings.appwrite_database_id,
            collection_id=settings.appwrite_collection_id,
            api_key=settings.appwrite_api_key,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "Content-Type": "application/json",
                "X-Appwrite-Project": self.project_id,
            }
            if self.api_key:
                headers["X-Appwrite-Key"] = self.api_key
            self._client = httpx.AsyncClient(
                base_url=self.endpoint,
                headers=headers,
                timeout=15.0,
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def _documents_path(self) -> str:
        return f"/databases/{self.database_id}/collections/{self.collection_id}/documents"

    async def _send(self, method: str, path: str, **kwargs) -> dict:
        client = await self._get_client()
        try:
            resp = await client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TrendingStoreError(f"Trending store request failed: {e}") from e

    async def list_documents(self, queries: list[str]) -> list[dict]:
        data = await self._send(
            "GET", self._documents_path, params=[("queries[]", q) for q in queries]
        )
        if not isinstance(data, dict):
            raise TrendingStoreError("Trending store returned an unexpected body")
        return data.get("documents", [])

    async def create_document(self, data: dict) -> dict:
        return await self._send(
            "POST",
            self._documents_path,
            json={"documentId": "unique()", "data": data},
        )

    async def update_document(self, document_id: str, data: dict) -> dict:
        return await self._send(
            "PATCH", f"{self._documents_path}/{document_id}", json={"data": data}
        )


@define
class TrendingService:
    """Records searches and reports the most searched movies."""

    store: AppwriteTrendingStore

    async def record_search(self, query: str, movie: MovieSummary) -> TrendingRecord:
        """Bump the search count for ``movie``, creating its document if needed."""
        existing = await self.store.list_documents(
            [_query("equal", "movie_id", [movie.id])]
        )
        if existing:
            doc = existing[0]
            count = int(doc.get("count") or 0) + 1
            updated = await self.store.update_document(
                doc["$id"], {"count": count, "searchTerm": query}
            )
            logger.info("Search count for movie %s is now %d", movie.id, count)
            return TrendingRecord.from_document(
                {**doc, **updated, "count": count, "searchTerm": query}
            )

        created = await self.store.create_document(
            {
                "searchTerm": query,
                "movie_id": movie.id,
                "title": movie.title,
                "count": 1,
                "poster_url": movie.poster_url or "",
            }
        )
        logger.info("Created trending document %s for movie %s", created.get("$id"), movie.id)
        return TrendingRecord.from_document(created)

    async def get_trending_movies(self) -> list[TrendingRecord]:
        """Top trending movies; an unreachable store yields an empty list."""
        try:
            docs = await self.store.list_documents(
                [_query("limit", values=[FETCH_LIMIT]), _query("orderDesc", "count")]
            )
            records = [TrendingRecord.from_document(d) for d in docs]
        except (TrendingStoreError, KeyError, TypeError, ValueError):
            logger.exception("Error fetching trending movies")
            return []
        return rank_trending(records)
