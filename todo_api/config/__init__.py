"""Configuration module."""

from .settings import (
    AppSettings,
    MongoSettings,
    AuthSettings,
    PolicySettings,
    PaginationSettings,
    get_settings,
    clear_settings_cache,
)

__all__ = [
    "AppSettings",
    "MongoSettings",
    "AuthSettings",
    "PolicySettings",
    "PaginationSettings",
    "get_settings",
    "clear_settings_cache",
]
