"""Tests for trending ranking and the trending store."""

import asyncio
import json

import httpx
from movie_discovery.models.tmdb import MovieSummary
from movie_discovery.models.trending import TrendingRecord
from movie_discovery.services.trending import (
    AppwriteTrendingStore,
    TrendingService,
    rank_trending,
)

DOCS_PATH = "/v1/databases/db/collections/searches/documents"


def record(movie_id, count, term="q", doc=""):
    return TrendingRecord(movie_id=movie_id, search_term=term, count=count, document_id=doc)


def make_trending(handler):
    store = AppwriteTrendingStore(
        endpoint="https://appwrite.test/v1",
        project_id="proj",
        database_id="db",
        collection_id="searches",
        api_key="key",
        transport=httpx.MockTransport(handler),
    )
    return TrendingService(store)


def run(service, coro):
    async def scenario():
        try:
            return await coro
        finally:
            await service.store.close()

    return asyncio.run(scenario())


class TestRankTrending:
    """Tests for the dedup and top-N ranking."""

    def test_duplicates_keep_highest_count(self):
        """Test duplicate movie ids collapse to the highest count."""
        ranked = rank_trending([record(42, 3), record(7, 4), record(42, 7), record(42, 5)])
        matches = [r for r in ranked if r.movie_id == 42]
        assert len(matches) == 1
        assert matches[0].count == 7

    def test_truncates_to_five(self):
        """Test output length is min(5, distinct movies)."""
        records = [record(i, i) for i in range(1, 9)] + [record(3, 1)]
        ranked = rank_trending(records)
        assert [r.movie_id for r in ranked] == [8, 7, 6, 5, 4]
        assert len(rank_trending([record(1, 2), record(2, 2), record(1, 1)])) == 2

    def test_sorted_descending(self):
        """Test ranking is descending by count."""
        ranked = rank_trending([record(1, 2), record(2, 9), record(3, 5)])
        assert [r.count for r in ranked] == [9, 5, 2]

    def test_ties_keep_encounter_order(self):
        """Test equal counts keep the order records were seen."""
        ranked = rank_trending([record(1, 4), record(2, 4), record(3, 6), record(4, 4)])
        assert [r.movie_id for r in ranked] == [3, 1, 2, 4]

    def test_equal_duplicate_counts_keep_first_seen(self):
        """Test an equal-count duplicate does not replace the kept record."""
        ranked = rank_trending([record(42, 5, doc="a"), record(42, 5, doc="b")])
        assert [r.document_id for r in ranked] == ["a"]

    def test_empty_input(self):
        """Test empty input ranks to an empty list."""
        assert rank_trending([]) == []


class TestTrendingService:
    """Tests for reading and writing trending documents."""

    def test_get_trending_movies_ranks_documents(self):
        """Test documents are fetched ordered by count and reconciled."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "total": 3,
                    "documents": [
                        {"$id": "a", "movie_id": 42, "searchTerm": "guide", "count": 7},
                        {"$id": "b", "movie_id": 42, "searchTerm": "hitch", "count": 3},
                        {"$id": "c", "movie_id": 11, "searchTerm": "star", "count": 5},
                    ],
                },
            )

        service = make_trending(handler)
        ranked = run(service, service.get_trending_movies())

        assert [(r.movie_id, r.count) for r in ranked] == [(42, 7), (11, 5)]
        request = seen[0]
        assert request.url.path == DOCS_PATH
        assert request.headers["x-appwrite-project"] == "proj"
        queries = [json.loads(q) for q in request.url.params.get_list("queries[]")]
        assert {"method": "limit", "values": [100]} in queries
        assert {"method": "orderDesc", "attribute": "count"} in queries

    def test_store_failure_reads_as_no_trending_data(self):
        """Test an unavailable store yields an empty list instead of raising."""
        service = make_trending(lambda request: httpx.Response(500, json={"message": "down"}))
        assert run(service, service.get_trending_movies()) == []

    def test_non_object_body_reads_as_no_trending_data(self):
        """Test a JSON body that is not an object is treated as a store failure."""
        service = make_trending(lambda request: httpx.Response(200, json=[1, 2]))
        assert run(service, service.get_trending_movies()) == []

    def test_connection_failure_reads_as_no_trending_data(self):
        """Test transport errors are swallowed on the read path."""

        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        service = make_trending(handler)
        assert run(service, service.get_trending_movies()) == []

    def test_record_search_creates_document(self):
        """Test a first search creates a document with count 1."""
        writes = []

        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json={"total": 0, "documents": []})
            writes.append(request)
            body = json.loads(request.content)
            return httpx.Response(201, json={"$id": "new", **body["data"]})

        service = make_trending(handler)
        movie = MovieSummary(id=42, title="Guide", poster_path="/g.jpg")
        created = run(service, service.record_search("guide", movie))

        assert writes[0].method == "POST"
        body = json.loads(writes[0].content)
        assert body["documentId"] == "unique()"
        assert body["data"] == {
            "searchTerm": "guide",
            "movie_id": 42,
            "title": "Guide",
            "count": 1,
            "poster_url": "https://image.tmdb.org/t/p/w500/g.jpg",
        }
        assert created.document_id == "new"
        assert created.count == 1

    def test_record_search_increments_existing(self):
        """Test a repeat search bumps the count and updates the search term."""
        writes = []

        def handler(request):
            if request.method == "GET":
                return httpx.Response(
                    200,
                    json={
                        "total": 1,
                        "documents": [
                            {"$id": "doc42", "movie_id": 42, "searchTerm": "old", "count": 4}
                        ],
                    },
                )
            writes.append(request)
            return httpx.Response(200, json={"$id": "doc42", "movie_id": 42})

        service = make_trending(handler)
        updated = run(
            service, service.record_search("new term", MovieSummary(id=42, title="Guide"))
        )

        assert writes[0].method == "PATCH"
        assert writes[0].url.path == f"{DOCS_PATH}/doc42"
        assert json.loads(writes[0].content) == {"data": {"count": 5, "searchTerm": "new term"}}
        assert updated.count == 5
