"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

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
    APP_NAME: str = "IssuePulse"
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
    # string (local emulator) must be provided.
    AZURE_COSMOS_ENDPOINT: str | None = None
    AZURE_COSMOS_CONNECTION_STRING: str | None = None
    AZURE_COSMOS_DATABASE: str = "issuepulse"
    AZURE_COSMOS_DISABLE_SSL: bool = False  # Emulator uses a self-signed cert

    # Operator authentication (tokens are issued by the accounts service)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    # Comma-separated list of roles allowed to use operator endpoints
    OPERATOR_ROLES: str = "admin,superadmin"

    @property
    def operator_roles_list(self) -> list[str]:
        """Get operator roles as a list."""
        return [role.strip() for role in self.OPERATOR_ROLES.split(",") if role.strip()]

    # CORS - stored as comma-separated string to avoid pydantic-settings JSON parsing issues
    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        import json

        try:
            return json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # Poll Configuration
    POLL_TIMEZONE: str = "America/Chicago"  # Week boundaries are computed in this zone
    POLL_MAX_SELECTIONS: int = 3  # Issues a voter may pick per week
    POLL_HISTORY_LIMIT: int = 52  # Archived weeks returned by /analytics

    @field_validator("POLL_TIMEZONE")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject unknown IANA timezone names at startup."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @property
    def poll_tz(self) -> ZoneInfo:
        """Organization timezone as a tzinfo."""
        return ZoneInfo(self.POLL_TIMEZONE)

    # Weekly archive sweep
    ARCHIVE_SCHEDULER_ENABLED: bool = True
    ARCHIVE_SWEEP_MINUTE: int = 5  # Sweep runs hourly at this minute (org timezone)
    # Automatic sweeps only write inside [boundary - BEFORE, boundary + AFTER),
    # where boundary is Monday 00:00 in POLL_TIMEZONE.
    ARCHIVE_WINDOW_HOURS_BEFORE: int = 1
    ARCHIVE_WINDOW_HOURS_AFTER: int = 2

    # Live results fan-out
    BROADCAST_QUEUE_SIZE: int = 32  # Per-listener backlog before events are dropped


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
