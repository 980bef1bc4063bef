"""Local demo profiles and the favorites and stats kept for each of them."""

import json
import logging
import time
from datetime import datetime, timezone

import attrs
from attrs import define

from ..models.tmdb import MovieSummary
from ..storage import KEY_PREFIX, KeyValueStore, scoped_key

logger = logging.getLogger(__name__)

CURRENT_PROFILE_KEY = f"{KEY_PREFIX}_current_user"
PROFILES_KEY = f"{KEY_PREFIX}_users_list"

DEMO_PROFILES = (
    ("Yug", "yug@demo.com", "👨‍💼"),
    ("Rohit", "rohit@demo.com", "🧑‍💻"),
    ("Rahul", "rahul@demo.com", "👨‍🎨"),
)


async def _load_json(store: KeyValueStore, key: str, default):
    raw = await store.get(key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Discarding unreadable value stored under %s", key)
        return default


def _summary_dict(movie: MovieSummary) -> dict:
    # details records are stored in their summary form
    return attrs.asdict(
        movie, filter=lambda a, _: a.name in attrs.fields_dict(MovieSummary)
    )


@define
class Profile:
    """Represents a local demo profile."""

    id: str
    name: str
    email: str | None = None
    avatar: str | None = None
    created_at: str = ""


@define
class Stats:
    """Per-profile activity counters."""

    watched: int = 0
    searches: int = 0


@define
class ProfileStore:
    """Profile list plus the pointer to the profile currently in use."""

    store: KeyValueStore

    async def all(self) -> list[Profile]:
        data = await _load_json(self.store, PROFILES_KEY, [])
        return [Profile(**p) for p in data]

    async def _save(self, profiles: list[Profile]) -> None:
        await self.store.set(
            PROFILES_KEY, json.dumps([attrs.asdict(p) for p in profiles])
        )

    async def create(
        self, name: str, email: str | None = None, avatar: str | None = None
    ) -> Profile:
        profiles = await self.all()
        profile = Profile(
            id=str(time.time_ns() // 1_000_000),
            name=name,
            email=email,
            avatar=avatar,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        # millisecond ids collide when created back to back
        while any(p.id == profile.id for p in profiles):
            profile.id = str(int(profile.id) + 1)
        profiles.append(profile)
        await self._save(profiles)
        return profile

    async def get(self, profile_id: str) -> Profile | None:
        return next((p for p in await self.all() if p.id == profile_id), None)

    async def current_id(self) -> str | None:
        return await self.store.get(CURRENT_PROFILE_KEY)

    async def switch(self, profile_id: str) -> Profile:
        profile = await self.get(profile_id)
        if profile is None:
            raise KeyError(f"Unknown profile: {profile_id}")
        await self.store.set(CURRENT_PROFILE_KEY, profile_id)
        return profile

    async def ensure_demo_profiles(self) -> list[Profile]:
        """Create the demo profiles on first run and select the first one."""
        profiles = await self.all()
        if profiles:
            return profiles
        for name, email, avatar in DEMO_PROFILES:
            profiles.append(await self.create(name, email, avatar))
        await self.switch(profiles[0].id)
        logger.info("Demo profiles initialized: %s", [p.name for p in profiles])
        return profiles

    async def resolve_scope(self, profile_id: str | None = None) -> str:
        """Profile id to namespace data under, defaulting to the current one."""
        if profile_id:
            return profile_id
        current = await self.current_id()
        if current:
            return current
        profiles = await self.ensure_demo_profiles()
        return profiles[0].id


@define
class FavoritesStore:
    """Saved movies, namespaced by profile scope."""

    store: KeyValueStore

    async def all(self, scope: str) -> list[MovieSummary]:
        data = await _load_json(self.store, scoped_key(scope, "favorites"), [])
        return [MovieSummary(**m) for m in data]

    async def _save(self, scope: str, movies: list[MovieSummary]) -> None:
        await self.store.set(
            scoped_key(scope, "favorites"),
            json.dumps([_summary_dict(m) for m in movies]),
        )

    async def is_favorite(self, scope: str, movie_id: int) -> bool:
        return any(m.id == movie_id for m in await self.all(scope))

    async def add(self, scope: str, movie: MovieSummary) -> None:
        movies = await self.all(scope)
        if any(m.id == movie.id for m in movies):
            return
        movies.append(movie)
        await self._save(scope, movies)

    async def remove(self, scope: str, movie_id: int) -> None:
        movies = await self.all(scope)
        await self._save(scope, [m for m in movies if m.id != movie_id])

    async def toggle(self, scope: str, movie: MovieSummary) -> bool:
        """Flip the favorite state of ``movie``. Returns the new state."""
        if await self.is_favorite(scope, movie.id):
            await self.remove(scope, movie.id)
            return False
        await self.add(scope, movie)
        return True


@define
class StatsStore:
    """Watch and search counters, namespaced by profile scope."""

    store: KeyValueStore

    async def get(self, scope: str) -> Stats:
        data = await _load_json(self.store, scoped_key(scope, "stats"), {})
        try:
            return Stats(
                watched=int(data.get("watched", 0)),
                searches=int(data.get("searches", 0)),
            )
        except (AttributeError, TypeError, ValueError):
            logger.warning("Resetting malformed stats for scope %s", scope)
            return Stats()

    async def _bump(self, scope: str, counter: str) -> Stats:
        stats = await self.get(scope)
        setattr(stats, counter, getattr(stats, counter) + 1)
        await self.store.set(scoped_key(scope, "stats"), json.dumps(attrs.asdict(stats)))
        return stats

    async def increment_watched(self, scope: str) -> Stats:
        return await self._bump(scope, "watched")

    async def increment_searches(self, scope: str) -> Stats:
        return await self._bump(scope, "searches")
