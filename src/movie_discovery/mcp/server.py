"""MCP server exposing movie discovery tools."""

import asyncio
import json
import logging
import sys

import attrs
from attrs import define
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from ..config import Settings, get_settings
from ..logging_setup import configure_logging
from ..models.tmdb import MovieSummary
from ..services.profiles import FavoritesStore, ProfileStore, StatsStore
from ..services.streaming import WatchProviderResolver
from ..services.tmdb import TMDbService
from ..services.trending import AppwriteTrendingStore, TrendingService
from ..storage import JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)

PROFILE_ARG = {
    "type": "string",
    "description": "Profile id; defaults to the current profile",
}

TOOLS = [
    Tool(
        name="discover_movies",
        description="List popular movies, or search by title when a query is given",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Title search; leave empty for popular movies",
                },
            },
        },
    ),
    Tool(
        name="get_movie_details",
        description="Get full TMDb details for a movie",
        inputSchema={
            "type": "object",
            "properties": {
                "movie_id": {"type": "integer", "description": "TMDb movie ID"},
            },
            "required": ["movie_id"],
        },
    ),
    Tool(
        name="where_to_watch",
        description="Find a streaming link for a movie, or a web search link",
        inputSchema={
            "type": "object",
            "properties": {
                "movie_id": {"type": "integer", "description": "TMDb movie ID"},
                "title": {"type": "string", "description": "Movie title"},
                "profile_id": PROFILE_ARG,
            },
            "required": ["movie_id", "title"],
        },
    ),
    Tool(
        name="get_trending_movies",
        description="Most searched movies",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="record_search",
        description="Count a search that led to a movie, for trending and profile stats",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search term used"},
                "movie_id": {"type": "integer", "description": "TMDb movie ID"},
                "profile_id": PROFILE_ARG,
            },
            "required": ["query", "movie_id"],
        },
    ),
    Tool(
        name="list_favorites",
        description="Movies saved by a profile",
        inputSchema={
            "type": "object",
            "properties": {"profile_id": PROFILE_ARG},
        },
    ),
    Tool(
        name="toggle_favorite",
        description="Save a movie to, or remove it from, a profile's favorites",
        inputSchema={
            "type": "object",
            "properties": {
                "movie_id": {"type": "integer", "description": "TMDb movie ID"},
                "profile_id": PROFILE_ARG,
            },
            "required": ["movie_id"],
        },
    ),
    Tool(
        name="get_stats",
        description="Watch and search counters for a profile",
        inputSchema={
            "type": "object",
            "properties": {"profile_id": PROFILE_ARG},
        },
    ),
    Tool(
        name="list_profiles",
        description="List local demo profiles and the current one",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="switch_profile",
        description="Make another profile the current one",
        inputSchema={
            "type": "object",
            "properties": {
                "profile_id": {"type": "string", "description": "Profile id"},
            },
            "required": ["profile_id"],
        },
    ),
]


@define
class ToolContext:
    """Services the tools operate on."""

    tmdb: TMDbService
    resolver: WatchProviderResolver
    profiles: ProfileStore
    favorites: FavoritesStore
    stats: StatsStore
    trending: TrendingService | None = None

    @classmethod
    def build(cls, settings: Settings, store: KeyValueStore | None = None) -> "ToolContext":
        if store is None:
            store = JsonFileStore(settings.storage_path)
        tmdb = TMDbService.from_settings(settings)
        trending = None
        if settings.trending_enabled:
            trending = TrendingService(AppwriteTrendingStore.from_settings(settings))
        return cls(
            tmdb=tmdb,
            resolver=WatchProviderResolver(tmdb),
            profiles=ProfileStore(store),
            favorites=FavoritesStore(store),
            stats=StatsStore(store),
            trending=trending,
        )

    async def close(self) -> None:
        await self.tmdb.close()
        if self.trending is not None:
            await self.trending.store.close()


def _movie_json(movie: MovieSummary) -> dict:
    return {
        "id": movie.id,
        "title": movie.title,
        "year": movie.release_year,
        "rating": round(movie.vote_average, 1),
        "poster_url": movie.poster_url,
    }


async def handle_tool(ctx: ToolContext, name: str, arguments: dict):
    """Run a tool and return its JSON-serializable result."""
    if name == "discover_movies":
        movies = await ctx.tmdb.discover_or_search(arguments.get("query", ""))
        return [_movie_json(m) for m in movies]

    elif name == "get_movie_details":
        details = await ctx.tmdb.get_details(arguments["movie_id"])
        result = attrs.asdict(details)
        result["genres"] = [attrs.asdict(g) for g in details.genres]
        result["production_companies"] = [
            attrs.asdict(c) for c in details.production_companies
        ]
        result["poster_url"] = details.poster_url
        return result

    elif name == "where_to_watch":
        link = await ctx.resolver.where_to_watch(arguments["movie_id"], arguments["title"])
        scope = await ctx.profiles.resolve_scope(arguments.get("profile_id"))
        await ctx.stats.increment_watched(scope)
        return {
            "url": link.url,
            "provider": link.provider_name,
            "region": link.region,
            "is_fallback": link.is_fallback,
        }

    elif name == "get_trending_movies":
        if ctx.trending is None:
            return []
        return [
            {
                "movie_id": r.movie_id,
                "title": r.title,
                "search_term": r.search_term,
                "count": r.count,
                "poster_url": r.poster_url,
            }
            for r in await ctx.trending.get_trending_movies()
        ]

    elif name == "record_search":
        details = await ctx.tmdb.get_details(arguments["movie_id"])
        scope = await ctx.profiles.resolve_scope(arguments.get("profile_id"))
        stats = await ctx.stats.increment_searches(scope)
        result = {"searches": stats.searches, "trending_count": None}
        if ctx.trending is not None:
            record = await ctx.trending.record_search(arguments["query"], details)
            result["trending_count"] = record.count
        return result

    elif name == "list_favorites":
        scope = await ctx.profiles.resolve_scope(arguments.get("profile_id"))
        return [_movie_json(m) for m in await ctx.favorites.all(scope)]

    elif name == "toggle_favorite":
        scope = await ctx.profiles.resolve_scope(arguments.get("profile_id"))
        details = await ctx.tmdb.get_details(arguments["movie_id"])
        saved = await ctx.favorites.toggle(scope, details)
        return {"movie_id": details.id, "title": details.title, "favorite": saved}

    elif name == "get_stats":
        scope = await ctx.profiles.resolve_scope(arguments.get("profile_id"))
        stats = await ctx.stats.get(scope)
        favorites = await ctx.favorites.all(scope)
        return {**attrs.asdict(stats), "favorites": len(favorites)}

    elif name == "list_profiles":
        profiles = await ctx.profiles.ensure_demo_profiles()
        current = await ctx.profiles.current_id()
        return {
            "current": current,
            "profiles": [attrs.asdict(p) for p in profiles],
        }

    elif name == "switch_profile":
        profile = await ctx.profiles.switch(arguments["profile_id"])
        return attrs.asdict(profile)

    raise ValueError(f"Unknown tool: {name}")


def create_mcp_server(ctx: ToolContext | None = None) -> Server:
    """Create and configure the MCP server."""
    server = Server("movie-discovery")
    if ctx is None:
        ctx = ToolContext.build(get_settings())

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        try:
            result = await handle_tool(ctx, name, arguments or {})
        except Exception as e:
            logger.exception("Tool %s failed", name)
            return [TextContent(type="text", text=f"Error: {str(e)}")]
        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    return server


async def main():
    """Run the MCP server."""
    settings = get_settings()
    # stdout carries the MCP protocol
    configure_logging(settings.log_level, settings.log_format, stream=sys.stderr)
    ctx = ToolContext.build(settings)
    server = create_mcp_server(ctx)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await ctx.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
