"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Charcha Manch"
    APP_ENV: str = "development"
    DEBUG: bool = False
    SECRET_KEY: str = ""  # Required - loaded from environment

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_required_secrets(cls, v: str, info: Any) -> str:
        """Validate that required secrets are set."""
        if not v:
            raise ValueError(f"{info.field_name} must be set in environment")
        return v

    # Azure Cosmos DB
    # Either the endpoint (RBAC via DefaultAzureCredential) or a connection
    # string (local emulator) must be set.
    AZURE_COSMOS_ENDPOINT: str | None = None
    AZURE_COSMOS_CONNECTION_STRING: str | None = None
    AZURE_COSMOS_DATABASE: str = "charcha-manch"
    AZURE_COSMOS_DISABLE_SSL: bool = False  # Emulator only (self-signed cert)

    # Authentication (identity tokens issued by the sign-in provider)
    JWT_ALGORITHM: str = "HS256"
    AUTH_TOKEN_ISSUER: str = "charcha-manch-auth"
    AUTH_TOKEN_AUDIENCE: str = "charcha-manch-client"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # CORS - stored as comma-separated string to avoid pydantic-settings JSON parsing issues
    CORS_ORIGINS: str = "http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        import json

        try:
            return json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def cosmos_configured(self) -> bool:
        """Whether a Cosmos DB endpoint or connection string is present."""
        return bool(self.AZURE_COSMOS_ENDPOINT or self.AZURE_COSMOS_CONNECTION_STRING)

    # Static candidate dataset (candidates.json / candidates_en.json)
    CANDIDATES_DATA_DIR: str = "data"
    CONSTITUENCY_COUNT: int = 243  # Bihar Vidhan Sabha seats

    # Nagrik number allocation
    NAGRIK_NUMBER_FLOOR: int = 1001
    NAGRIK_FALLBACK_MAX: int = 10000
    NAGRIK_ALLOCATION_MAX_ATTEMPTS: int = 5

    # Vote/rating ledger
    LEDGER_MAX_RETRIES: int = 5  # Optimistic concurrency retries on score updates

    # Backfill migration
    MIGRATION_THROTTLE_SECONDS: float = 0.1  # Delay between profile writes


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
