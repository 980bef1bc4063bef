"""Forwarding proxy that keeps the TMDb credential off client devices."""

import logging
from contextlib import asynccontextmanager

import httpx
import uvicorn
from attrs import define
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..logging_setup import configure_logging

logger = logging.getLogger(__name__)


@define
class UpstreamRelay:
    """Forwards GET requests to the upstream API with the server's bearer token."""

    base_url: str
    read_access_token: str
    timeout: float = 15.0
    transport: httpx.AsyncBaseTransport | None = None
    _client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.read_access_token}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def forward(self, path: str, params: list[tuple[str, str]]):
        """Return the upstream JSON body; raises on any upstream failure."""
        client = await self._get_client()
        resp = await client.get(path, params=params)
        resp.raise_for_status()
        return resp.json()


def create_proxy_app(settings: Settings, relay: UpstreamRelay | None = None) -> FastAPI:
    """Build the proxy application.

    Every upstream failure is reported as a 500 with an ``error`` message,
    whatever status the upstream returned.
    """
    if relay is None:
        if not settings.tmdb_read_access_token:
            raise ValueError("TMDB_READ_ACCESS_TOKEN must be set for the proxy")
        relay = UpstreamRelay(
            base_url=settings.tmdb_base_url,
            read_access_token=settings.tmdb_read_access_token,
            timeout=settings.request_timeout,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await relay.close()

    app = FastAPI(title="Movie Discovery Proxy", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def relay_to(path: str, request: Request):
        logger.info("Proxying %s", path)
        try:
            body = await relay.forward(path, request.query_params.multi_items())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Proxy error for %s: %s", path, e)
            return JSONResponse(status_code=500, content={"error": str(e)})
        return JSONResponse(content=body)

    @app.get("/api/discover/movie")
    async def discover_movie(request: Request):
        return await relay_to("/discover/movie", request)

    @app.get("/api/search/movie")
    async def search_movie(request: Request):
        return await relay_to("/search/movie", request)

    @app.get("/api/movie/{movie_id}")
    async def movie_details(movie_id: str, request: Request):
        return await relay_to(f"/movie/{movie_id}", request)

    @app.get("/api/movie/{movie_id}/watch/providers")
    async def watch_providers(movie_id: str, request: Request):
        return await relay_to(f"/movie/{movie_id}/watch/providers", request)

    return app


def run() -> None:
    """Run the proxy with uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    app = create_proxy_app(settings)
    logger.info("Proxy server listening on %s:%s", settings.proxy_host, settings.proxy_port)
    uvicorn.run(app, host=settings.proxy_host, port=settings.proxy_port)


if __name__ == "__main__":
    run()
