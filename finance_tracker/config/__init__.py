"""Configuration package."""

from finance_tracker.config.settings import (
    AppSettings,
    DatabaseSettings,
    JwtSettings,
    SETTINGS_GROUPS,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "SETTINGS_GROUPS",
    "AppSettings",
    "DatabaseSettings",
    "JwtSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
