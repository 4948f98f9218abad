"""Application settings loaded from .env via pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration; values come from environment / .env file."""

    # App
    secret_key: str = "change-me"
    log_level: str = "INFO"

    # Database
    db_path: str = "./data/playlists.db"

    # Remote store (empty → use the local SQLite store)
    store_base_url: str = ""
    store_timeout: float = 10.0
    store_max_retries: int = 3

    # Editors untouched for this long are dropped along with their history
    editor_idle_seconds: float = 3600.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def db_abs_path(self) -> Path:
        """Return the database path as an absolute Path, creating parents if needed."""
        p = Path(self.db_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        return p.resolve()


@lru_cache
def get_settings() -> Settings:
    """Cached singleton so .env is read only once."""
    return Settings()
