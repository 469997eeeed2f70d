"""Application configuration from environment."""
from pathlib import Path

from pydantic_settings import BaseSettings

# Package root (emotrain/), bundled data lives under it
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """App settings loaded from env / .env."""

    app_name: str = "Emotion Story Trainer"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./emotrain.db"

    # Signed identity token (minted by the identity provider)
    secret_key: str = "change-me-in-production-use-env"
    auth_cookie_name: str = "emotrain_auth"
    auth_token_max_age: int = 60 * 60 * 24 * 14  # 14 days

    # Catalog
    catalog_path: Path = BASE_DIR / "data" / "scenarios.json"
    seed_on_startup: bool = True

    # Write running accuracy after every answer, not only on completion.
    # Each write counts as an attempt in the progress store.
    save_partial_progress: bool = False

    # Live play-throughs (seconds). Finished ones only linger for a replay.
    playthrough_idle_ttl: int = 60 * 60 * 2
    playthrough_restart_window: int = 60 * 10
    playthrough_max_live: int = 10_000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "EMOTRAIN_"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
