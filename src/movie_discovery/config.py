"""Configuration management using environment variables."""

import os
from functools import lru_cache

from attrs import define


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@define
class Settings:
    """Application settings."""

    tmdb_read_access_token: str | None = None
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    use_proxy: bool = False
    proxy_url: str = "http://localhost:3001/api"
    request_timeout: float = 15.0
    proxy_host: str = "0.0.0.0"
    proxy_port: int = 3001
    appwrite_endpoint: str = "https://cloud.appwrite.io/v1"
    appwrite_project_id: str | None = None
    appwrite_api_key: str | None = None
    appwrite_database_id: str | None = None
    appwrite_collection_id: str | None = None
    storage_path: str = "./data/movie_discovery.json"
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def api_base_url(self) -> str:
        """Base address the movie client talks to."""
        return self.proxy_url if self.use_proxy else self.tmdb_base_url

    @property
    def trending_enabled(self) -> bool:
        return all(
            (
                self.appwrite_project_id,
                self.appwrite_database_id,
                self.appwrite_collection_id,
            )
        )


@lru_cache
def get_settings() -> Settings:
    """Load settings from the environment."""
    return Settings(
        tmdb_read_access_token=os.environ.get("TMDB_READ_ACCESS_TOKEN"),
        tmdb_base_url=os.environ.get("TMDB_BASE_URL", "https://api.themoviedb.org/3"),
        use_proxy=_env_flag("USE_PROXY"),
        proxy_url=os.environ.get("PROXY_URL", "http://localhost:3001/api"),
        request_timeout=float(os.environ.get("REQUEST_TIMEOUT", "15")),
        proxy_host=os.environ.get("PROXY_HOST", "0.0.0.0"),
        proxy_port=int(os.environ.get("PROXY_PORT", "3001")),
        appwrite_endpoint=os.environ.get(
            "APPWRITE_ENDPOINT", "https://cloud.appwrite.io/v1"
        ),
        appwrite_project_id=os.environ.get("APPWRITE_PROJECT_ID"),
        appwrite_api_key=os.environ.get("APPWRITE_API_KEY"),
        appwrite_database_id=os.environ.get("APPWRITE_DATABASE_ID"),
        appwrite_collection_id=os.environ.get("APPWRITE_COLLECTION_ID"),
        storage_path=os.environ.get("STORAGE_PATH", "./data/movie_discovery.json"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        log_format=os.environ.get("LOG_FORMAT", "json").lower(),
    )
