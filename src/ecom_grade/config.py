"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "ecom-grade"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Database (SQLite for local dev, PostgreSQL for prod)
    database_url: str = "sqlite+aiosqlite:///./ecom_grade.db"

    # Cache (empty URL = in-process memory cache)
    redis_url: str = ""
    cache_ttl_seconds: int = 300
    dashboard_cache_key: str = "dashboard_data_{user_id}"

    # Frontend
    frontend_url: str = "http://localhost:3000"

    # API
    api_prefix: str = "/api"

    # Recalculation
    default_recalculation_reason: str = "Recalculated from product overrides"

    def dashboard_key(self, user_id: str) -> str:
        """Cache key of the per-user dashboard view."""
        return self.dashboard_cache_key.format(user_id=user_id)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
