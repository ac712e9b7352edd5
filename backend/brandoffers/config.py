"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "Brand Offers API"
    debug: bool = False
    log_level: str = "INFO"

    # Record store (any SQLAlchemy async URL; production runs on PostgreSQL)
    database_url: str = "sqlite+aiosqlite:///./brandoffers.db"
    database_pool_timeout: float = 10.0  # seconds
    auto_create_tables: bool = True

    # Atomic multi-record updates are re-run when a record version moves
    # between the read and the compare-and-swap write.
    store_max_attempts: int = 5

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 100

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
