"""Tests for the TMDb service."""

import asyncio

import httpx
import pytest
from movie_discovery.config import Settings
from movie_discovery.errors import (
    NetworkError,
    NotFound,
    ParseError,
    RemoteError,
    RequestTimeout,
)
from movie_discovery.services.tmdb import TMDbService

UPSTREAM = "https://api.themoviedb.test/3"
PROXY = "http://proxy.local:3001/api"

POPULAR = {
    "page": 1,
    "results": [
        {
            "id": 1,
            "title": "Most Popular",
            "poster_path": "/a.jpg",
            "vote_average": 8.1,
            "release_date": "2024-05-01",
        },
        {"id": 2, "title": "Runner Up", "poster_path": None, "vote_average": 7},
        {"id": 3, "title": "Third", "vote_average": None, "release_date": ""},
    ],
}


def make_service(handler, use_proxy=False, token="secret"):
    return TMDbService(
        base_url=PROXY if use_proxy else UPSTREAM,
        read_access_token=token,
        use_proxy=use_proxy,
        transport=httpx.MockTransport(handler),
    )


def call(service, method, *args):
    async def scenario():
        try:
            return await getattr(service, method)(*args)
        finally:
            await service.close()

    return asyncio.run(scenario())


class TestDiscoverOrSearch:
    """Tests for discover_or_search."""

    def test_empty_query_discovers_by_popularity(self):
        """Test an empty query hits discover sorted by popularity."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=POPULAR)

        movies = call(make_service(handler), "discover_or_search", "")

        assert seen[0].url.path == "/3/discover/movie"
        assert seen[0].url.params["sort_by"] == "popularity.desc"
        assert [m.id for m in movies] == [1, 2, 3]
        assert movies[0].title == "Most Popular"
        assert movies[1].vote_average == 7.0
        assert movies[2].vote_average == 0.0
        assert movies[1].release_date == ""

    def test_query_is_percent_encoded(self):
        """Test spaces in the query are sent as %20."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"results": []})

        call(make_service(handler), "discover_or_search", "spider man")

        assert seen[0].url.path == "/3/search/movie"
        assert "query=spider%20man" in str(seen[0].url)
        assert seen[0].url.params["query"] == "spider man"

    def test_missing_results_returns_empty_list(self):
        """Test a body without results yields no movies."""
        movies = call(
            make_service(lambda request: httpx.Response(200, json={"page": 1})),
            "discover_or_search",
        )
        assert movies == []

    def test_not_found_on_listing_is_remote_error(self):
        """Test a 404 on a listing is not treated as a missing id."""
        service = make_service(lambda request: httpx.Response(404, json={}))
        with pytest.raises(RemoteError) as excinfo:
            call(service, "discover_or_search", "")
        assert not isinstance(excinfo.value, NotFound)
        assert excinfo.value.status_code == 404


class TestCredentials:
    """Tests for header handling with and without the proxy."""

    def test_direct_mode_sends_bearer_token(self):
        """Test the credential is attached when talking to TMDb directly."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"results": []})

        call(make_service(handler), "discover_or_search", "")
        assert seen[0].headers["authorization"] == "Bearer secret"

    def test_proxy_mode_sends_no_credential(self):
        """Test the proxy base URL is used and no credential leaves the client."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"results": []})

        call(make_service(handler, use_proxy=True, token=None), "discover_or_search", "")
        assert seen[0].url.host == "proxy.local"
        assert seen[0].url.path == "/api/discover/movie"
        assert "authorization" not in seen[0].headers

    def test_direct_mode_requires_token(self):
        """Test direct mode without a token is a configuration error."""
        with pytest.raises(ValueError):
            TMDbService(base_url=UPSTREAM)

    def test_from_settings_uses_proxy_switch(self):
        """Test the settings switch picks the proxy URL."""
        settings = Settings(use_proxy=True, proxy_url=PROXY)
        service = TMDbService.from_settings(settings)
        assert service.base_url == PROXY
        assert service.use_proxy is True
        assert service.timeout == 15.0


class TestDetails:
    """Tests for get_details and get_watch_provider_payload."""

    def test_get_details_parses_record(self):
        """Test full details are parsed, keeping list order."""
        body = {
            "id": 603,
            "title": "The Matrix",
            "poster_path": "/matrix.jpg",
            "vote_average": 8.2,
            "vote_count": 25000,
            "release_date": "1999-03-30",
            "runtime": 136,
            "overview": "A hacker learns the truth.",
            "budget": 63000000,
            "revenue": 463517383,
            "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
            "production_companies": [{"id": 79, "name": "Village Roadshow Pictures"}],
        }
        details = call(
            make_service(lambda request: httpx.Response(200, json=body)), "get_details", 603
        )
        assert details.id == 603
        assert details.runtime == 136
        assert [g.name for g in details.genres] == ["Action", "Science Fiction"]
        assert details.production_companies[0].name == "Village Roadshow Pictures"
        assert details.vote_count == 25000

    def test_unknown_id_raises_not_found(self):
        """Test a 404 for a movie id raises NotFound."""
        service = make_service(lambda request: httpx.Response(404, json={"success": False}))
        with pytest.raises(NotFound):
            call(service, "get_details", 999)

    def test_server_error_raises_remote_error_with_status(self):
        """Test non-2xx statuses other than 404 carry the status code."""
        service = make_service(lambda request: httpx.Response(503))
        with pytest.raises(RemoteError) as excinfo:
            call(service, "get_details", 1)
        assert excinfo.value.status_code == 503
        assert not isinstance(excinfo.value, NotFound)

    def test_watch_provider_payload_returns_results(self):
        """Test the per-region mapping is unwrapped from the body."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200, json={"id": 42, "results": {"US": {"link": "https://x"}}}
            )

        payload = call(make_service(handler), "get_watch_provider_payload", 42)
        assert seen[0].url.path == "/3/movie/42/watch/providers"
        assert payload == {"US": {"link": "https://x"}}

    def test_watch_provider_unknown_id_raises_not_found(self):
        """Test a 404 on watch providers raises NotFound."""
        service = make_service(lambda request: httpx.Response(404))
        with pytest.raises(NotFound):
            call(service, "get_watch_provider_payload", 999)


class TestTransportFailures:
    """Tests for error kinds raised on transport and decoding failures."""

    def test_timeout(self):
        """Test a timeout surfaces as RequestTimeout."""

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(RequestTimeout):
            call(make_service(handler), "discover_or_search", "")

    def test_connection_refused(self):
        """Test connection failures surface as NetworkError."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError):
            call(make_service(handler), "get_details", 1)

    def test_malformed_body(self):
        """Test an unparseable body surfaces as ParseError."""
        service = make_service(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(ParseError):
            call(service, "discover_or_search", "")

    def test_missing_required_field(self):
        """Test a details body without an id surfaces as ParseError."""
        service = make_service(lambda request: httpx.Response(200, json={"title": "?"}))
        with pytest.raises(ParseError):
            call(service, "get_details", 1)
