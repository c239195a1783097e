"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default="sqlite+aiosqlite:///./finance_tracker.db",
        description="SQLAlchemy async database URL"
    )
    echo: bool = Field(
        default=False,
        description="Log every SQL statement"
    )
    connect_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times to try the initial connection"
    )

    @field_validator('url')
    @classmethod
    def validate_async_driver(cls, v: str) -> str:
        """The engine is async, so the URL must name an async driver."""
        if "+" not in v.split("://", 1)[0]:
            raise ValueError(
                f"Database URL must name an async driver "
                f"(e.g. sqlite+aiosqlite, postgresql+asyncpg), got: {v}"
            )
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class JwtSettings(BaseSettings):
    """JWT issuance and verification configuration."""

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    secret_key: str = Field(
        ...,
        min_length=32,
        description="HMAC signing key"
    )
    algorithm: str = Field(
        default="HS256",
        description="Signing algorithm"
    )
    issuer: str = Field(
        default="finance-tracker",
        description="Value of the iss claim"
    )
    audience: str = Field(
        default="finance-tracker-client",
        description="Value of the aud claim"
    )
    expiration_hours: int = Field(
        default=24,
        ge=1,
        le=720,
        description="Token lifetime in hours"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for log output"
    )

    # HTTP
    cors_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    # Optional admin account created on startup
    seed_admin_email: Optional[str] = Field(
        default=None,
        description="Email of the admin user to create if missing"
    )
    seed_admin_password: Optional[str] = Field(
        default=None,
        description="Password of the admin user to create if missing"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def should_seed_admin(self) -> bool:
        return bool(self.seed_admin_email and self.seed_admin_password)


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def jwt(self) -> JwtSettings:
        return JwtSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


SETTINGS_GROUPS = ("database", "jwt", "app")


def validate_all_settings(settings: Optional[Settings] = None) -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the groups that failed.
    Called by the API at startup.
    """
    results = {}

    settings = settings or get_settings()

    for name in SETTINGS_GROUPS:
        try:
            _ = getattr(settings, name)
            results[name] = True
        except ValidationError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
