"""Application settings using Pydantic."""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class MongoSettings(BaseSettings):
    """MongoDB connection configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MONGO_",
        extra="ignore",
    )

    # In-memory stores are used when no URI is configured
    uri: Optional[SecretStr] = Field(default=None)
    database: str = Field(default="todo_app")
    todos_collection: str = Field(default="todos")
    users_collection: str = Field(default="users")
    timeout_ms: int = Field(default=5000)

    @property
    def enabled(self) -> bool:
        return self.uri is not None and bool(self.uri.get_secret_value())


class AuthSettings(BaseSettings):
    """Boundary with the external authentication layer."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AUTH_",
        extra="ignore",
    )

    # Header carrying the authenticated user's id
    user_header: str = Field(default="X-User-Id")


class PolicySettings(BaseSettings):
    """Ownership rules for operations other than update."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TODO_POLICY_",
        extra="ignore",
    )

    note_requires_owner: bool = Field(default=False)
    delete_requires_owner: bool = Field(default=False)


class PaginationSettings(BaseSettings):
    """List pagination defaults."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PAGINATION_",
        extra="ignore",
    )

    default_limit: int = Field(default=10, ge=1)


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO")
    # Comma-separated list of allowed origins
    cors_origins: str = Field(default="")

    def get_cors_origins(self) -> list[str]:
        """Get list of allowed CORS origins."""
        if not self.cors_origins:
            return []
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # Nested settings - manually create to avoid env prefix issues
    @property
    def mongo(self) -> MongoSettings:
        return MongoSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def policy(self) -> PolicySettings:
        return PolicySettings()

    @property
    def pagination(self) -> PaginationSettings:
        return PaginationSettings()


@lru_cache
def get_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
