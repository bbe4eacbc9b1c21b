"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str = Field(validation_alias="DATABASE_URL")
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Global switch for authentication enforcement. When disabled, the bearer
    # filter passes every request through and the token management API returns 403.
    security_enabled: bool = Field(default=True, validation_alias="SECURITY_ENABLED")

    # Bearer challenge realm, sent in WWW-Authenticate on 401 responses
    auth_realm: str = Field(default="access-tokens", validation_alias="AUTH_REALM")

    # Upper bound on the store + user directory work done for one authentication
    auth_lookup_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        validation_alias="AUTH_LOOKUP_TIMEOUT_SECONDS",
    )

    # Longest lifetime the management API accepts for a new token (1 year)
    max_token_lifetime_hours: int = Field(
        default=8760,
        ge=1,
        validation_alias="MAX_TOKEN_LIFETIME_HOURS",
    )

    @model_validator(mode="after")
    def validate_security_disabled_only_locally(self) -> "Settings":
        """
        Prevent security from being disabled against a non-local database.

        With SECURITY_ENABLED=false every request runs unauthenticated, so this is
        only allowed for local development databases.
        """
        if self.security_enabled:
            return self

        try:
            parsed = urlparse(self.database_url)
            hostname = parsed.hostname or ""
        except ValueError:
            hostname = ""

        local_hosts = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
        if hostname.lower() not in local_hosts:
            raise ValueError(
                f"SECURITY_ENABLED cannot be false with a non-local database. "
                f"Database host '{hostname}' appears to be a production database. "
                f"Disabling security skips all authentication and must only be used locally.",
            )

        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
