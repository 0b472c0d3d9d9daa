"""
Application configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./movies_on_demand.db"

    # Redis (acquisition queue)
    REDIS_URL: str = "redis://localhost:6379"
    ACQUISITION_QUEUE_NAME: str = "movie_acquisitions"
    ACQUISITION_WORKER_ENTRYPOINT: str = "downloader.tasks.process_acquisition"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Catalog metadata (TMDB)
    TMDB_API_KEY: str = ""
    TMDB_BASE_URL: str = "https://api.themoviedb.org/3"

    # Release search (NZBGeek)
    NZBGEEK_API_KEY: str = ""
    NZBGEEK_BASE_URL: str = "https://api.nzbgeek.info/api"

    # Object storage (Cloudflare R2)
    R2_ENDPOINT: str = ""
    R2_ACCESS_KEY: str = ""
    R2_SECRET_KEY: str = ""
    R2_BUCKET: str = "movies-on-demand"

    # Acquisition lifecycle
    WORKER_CALLBACK_SECRET: str = ""
    READY_TTL_HOURS: int = 24
    JOB_LIST_LIMIT: int = 50
    STALLED_JOB_MAX_AGE_MINUTES: int = 0
    AUTO_CREATE_DB_SCHEMA: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()


def require_tmdb_api_key() -> str:
    """Return configured TMDB API key or raise a configuration error."""
    api_key = (settings.TMDB_API_KEY or "").strip()
    if not api_key:
        raise ValueError("TMDB_API_KEY is not configured")
    return api_key


def require_nzbgeek_api_key() -> str:
    """Return configured NZBGeek API key or raise a configuration error."""
    api_key = (settings.NZBGEEK_API_KEY or "").strip()
    if not api_key:
        raise ValueError("NZBGEEK_API_KEY is not configured")
    return api_key
