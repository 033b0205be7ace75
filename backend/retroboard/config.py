"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded in prod)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from datetime import timedelta
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://retro:retro@db:5432/retro"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting platforms provide postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Identity
    session_cookie_name: str = "retro_session_id"
    session_cookie_secure: bool = False
    session_cookie_max_age_days: int = 365
    admin_secret_key: str = Field("dev-admin-secret-16chars", min_length=16)

    # API
    app_url: str = "http://localhost:3000"
    cors_origins: list[str] = ["http://localhost:5173"]

    # Presence: users seen within this many seconds count as active
    active_user_window_seconds: int = Field(120, ge=1)

    # Test data seeding (None = fresh randomness per call)
    seed_random_seed: int | None = None

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def active_user_window(self) -> timedelta:
        return timedelta(seconds=self.active_user_window_seconds)


@lru_cache
def get_settings() -> Settings:
    return Settings()
