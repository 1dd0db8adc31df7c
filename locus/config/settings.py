"""
Application Settings.

Centralized configuration using Pydantic Settings with environment variable loading.
Every field has a development default so the service boots with an in-memory
store; provider keys are only checked when a provider is first called.

Production Mode:
    When app_env="production", additional validations apply:
    - debug must be False
    - cors_allowed_origins cannot be ["*"]
    - store_backend must be "supabase" with credentials set
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Persisted Store
    # -------------------------------------------------------------------------
    store_backend: Literal["memory", "supabase"] = Field(
        default="memory",
        description="Which persisted store backs the cache",
    )
    supabase_url: str | None = Field(default=None, description="Supabase project URL")
    supabase_key: SecretStr | None = Field(
        default=None, description="Supabase anon or service key"
    )

    # -------------------------------------------------------------------------
    # Provider API Keys
    # -------------------------------------------------------------------------
    geocode_api_key: SecretStr | None = Field(
        default=None, description="Google Geocoding API key"
    )
    weather_api_key: SecretStr | None = Field(
        default=None, description="Pirate Weather (Dark Sky compatible) API key"
    )
    events_api_key: SecretStr | None = Field(
        default=None, description="Ticketmaster Discovery API key"
    )
    movies_api_key: SecretStr | None = Field(
        default=None, description="TMDB v3 API key"
    )
    reviews_api_key: SecretStr | None = Field(
        default=None, description="Yelp Fusion API key"
    )
    movies_region: str = Field(
        default="US",
        min_length=2,
        max_length=2,
        description="ISO 3166-1 region used for now-playing movies",
    )
    provider_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout applied to every outbound provider request",
    )

    # -------------------------------------------------------------------------
    # Freshness Thresholds
    # -------------------------------------------------------------------------
    weather_ttl_seconds: float = Field(default=15, ge=0.001, description="Weather TTL")
    events_ttl_seconds: float = Field(default=60 * 60, ge=0.001, description="Events TTL")
    movies_ttl_seconds: float = Field(default=24 * 60 * 60, ge=0.001, description="Movies TTL")
    reviews_ttl_seconds: float = Field(default=4 * 60 * 60, ge=0.001, description="Reviews TTL")

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    api_host: str = Field(default="0.0.0.0", description="Bind address")
    api_port: int = Field(default=3000, ge=1, le=65535, description="Bind port")

    # -------------------------------------------------------------------------
    # CORS Settings
    # -------------------------------------------------------------------------
    cors_allowed_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins. Use ['*'] for development only.",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @model_validator(mode="after")
    def validate_store_settings(self) -> "Settings":
        """Validate that the chosen store is configured."""
        if self.store_backend == "supabase" and not (self.supabase_url and self.supabase_key):
            raise ValueError("supabase_url and supabase_key are required for the supabase store")
        return self

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate that production settings are safe."""
        if self.app_env == "production":
            errors = []

            if self.debug:
                errors.append("debug must be False in production")

            if "*" in self.cors_allowed_origins:
                errors.append("cors_allowed_origins cannot contain '*' in production")

            if self.store_backend == "memory":
                errors.append("store_backend cannot be 'memory' in production")

            if errors:
                raise ValueError(
                    f"Production configuration errors: {'; '.join(errors)}"
                )

        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload settings if needed.
    """
    return Settings()
