"""Engine configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic import HttpUrl, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    project_name: str = "Product Search"
    version: str = "0.1.0"

    # Storefront
    storefront_url: HttpUrl = HttpUrl("http://localhost:9292")
    http_timeout: float = 10.0

    # Search behaviour
    min_query_length: int = 3
    search_limit: int = 10
    cache_max_entries: int = 10
    debounce_seconds: float = 0.1
    settle_seconds: float = 0.1

    # Events
    event_source: str = "product-search"
    redis_url: RedisDsn = RedisDsn("redis://localhost:6379/0")
    redis_channel_prefix: str = "storefront"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
