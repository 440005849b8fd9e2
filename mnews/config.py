"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache
from urllib.parse import quote_plus

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = Field(default=5000, validation_alias=AliasChoices("api_port", "port"))
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # ==========================================================================
    # Database
    # ==========================================================================

    # "memory" for development and tests, "mongo" for a real deployment
    storage_backend: str = "memory"
    mongodb_uri: str = ""
    mongodb_database: str = "mNewsDB"

    # Used to build the URI when MONGODB_URI is not set
    db_user: str = ""
    db_pass: str = ""
    db_host: str = "cluster0.mongodb.net"

    # ==========================================================================
    # Authentication
    # ==========================================================================

    jwt_secret_key: str = Field(
        default="dev-jwt-secret-change-in-production",
        validation_alias=AliasChoices("jwt_secret_key", "access_token_secret"),
    )
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24
    cookie_name: str = "token"

    # ==========================================================================
    # Payments
    # ==========================================================================

    stripe_secret_key: str = ""
    payment_currency: str = "usd"

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def resolved_mongodb_uri(self) -> str:
        """Explicit URI if given, otherwise an Atlas URI from the credential parts."""
        if self.mongodb_uri:
            return self.mongodb_uri
        return (
            f"mongodb+srv://{quote_plus(self.db_user)}:{quote_plus(self.db_pass)}"
            f"@{self.db_host}/?retryWrites=true&w=majority"
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
