"""Key-value storage backends for per-profile data."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from attrs import define, field

logger = logging.getLogger(__name__)

KEY_PREFIX = "@movie_app"


def scoped_key(scope: str, key: str) -> str:
    """Storage key for ``key`` inside the profile ``scope``."""
    return f"{KEY_PREFIX}_user_{scope}_{key}"


@runtime_checkable
class KeyValueStore(Protocol):
    """Async string-to-string map. No multi-key transactions."""

    async def get(self, key: str) -> str | None:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


@define
class InMemoryStore:
    """Process-local store, mostly for tests and ephemeral sessions."""

    data: dict[str, str] = field(factory=dict)

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


@define
class JsonFileStore:
    """Store persisted as a single JSON object on disk."""

    path: Path = field(converter=Path)
    _data: dict[str, str] | None = field(default=None, init=False)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.exception("Could not read store file %s, starting empty", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    async def _load(self) -> dict[str, str]:
        if self._data is None:
            self._data = await asyncio.to_thread(self._read)
        return self._data

    async def get(self, key: str) -> str | None:
        return (await self._load()).get(key)

    async def set(self, key: str, value: str) -> None:
        data = await self._load()
        data[key] = value
        await asyncio.to_thread(self._write, dict(data))

    async def remove(self, key: str) -> None:
        data = await self._load()
        if data.pop(key, None) is not None:
            await asyncio.to_thread(self._write, dict(data))
