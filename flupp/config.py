"""Application configuration via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Flupp"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8787
    workers: int = 4

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "flupp"
    postgres_password: str = Field(default="flupp_secret")
    postgres_db: str = "flupp"
    database_dsn: Optional[str] = None  # e.g. sqlite+aiosqlite:///./flupp.db
    db_pool_size: int = 20
    db_max_overflow: int = 10
    auto_create_tables: bool = False

    @computed_field
    @property
    def database_url(self) -> str:
        """Async database connection URL."""
        if self.database_dsn:
            return self.database_dsn
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Payment processor
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_api_version: str = "2024-06-20"
    stripe_timeout_seconds: float = 10.0
    simulated_webhook_secret: str = "whsec_simulated_dev_only"

    # Booking rules
    booking_max_days: int = 365
    price_min_cents: int = 50
    price_max_cents: int = 100_000_000
    supported_currencies: List[str] = ["GBP", "USD", "EUR"]
    default_currency: str = "GBP"
    pet_name_max_length: int = 50
    customer_email_max_length: int = 100

    # CORS
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5000"]

    # Tool bridge
    flupp_base_url: str = "http://localhost:8787"
    flupp_timeout_seconds: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
