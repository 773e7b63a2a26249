"""Configuration management for binge-tracker."""

from pathlib import Path

from pydantic_settings import BaseSettings


# Periodic refresh never runs more often than this
MIN_REFRESH_INTERVAL_MINUTES = 60


class Settings(BaseSettings):
    """Application settings loaded from environment or config file."""

    # Database
    database_url: str = ""

    # TMDB API
    tmdb_api_key: str = ""
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    http_timeout_seconds: float = 30.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8096
    debug: bool = False

    # Refresh
    stale_after_hours: int = 24
    refresh_interval_minutes: int = MIN_REFRESH_INTERVAL_MINUTES
    refresh_concurrency: int = 4
    refresh_on_startup: bool = True

    # IANA zone name used for every day-boundary calculation, empty = host local
    timezone: str = ""

    class Config:
        env_prefix = "BINGE_TRACKER_"
        env_file = ".env"


# Global settings instance
settings = Settings()


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_dir = get_project_root() / "data"
    data_dir.mkdir(exist_ok=True)
    return data_dir


def get_database_url() -> str:
    """Get the SQLAlchemy database URL, defaulting to a SQLite file in the data dir."""
    if settings.database_url:
        return settings.database_url
    return f"sqlite:///{get_data_dir() / 'binge-tracker.db'}"
