"""Application settings via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables with QH_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="QH_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Core ---
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///./questhub.db"
    redis_url: str = "redis://localhost:6379/0"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60
    log_level: str = "INFO"
    log_format: str = "json"

    # --- JWT (issued by the upstream wallet-auth service) ---
    jwt_secret: str = "questhub-dev-secret-change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    jwt_issuer: str = "questhub"

    # --- Event feed ---
    events_page_max: int = 100
    leaderboard_max: int = 100


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
