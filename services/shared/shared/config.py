"""Pydantic settings for application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(
        default="",
        description="Async SQLAlchemy database URL (e.g. sqlite+aiosqlite:///./voiceforge.db)",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Connection pool size",
    )
    max_overflow: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Max connections beyond pool size",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements",
    )


class StorageSettings(BaseSettings):
    """Artifact storage backend selection."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    backend: Literal["b2", "azure"] = Field(
        default="b2",
        description="Object storage backend for generated artifacts",
    )
    container: str = Field(
        default="artifacts",
        description="Container name (Azure backend only)",
    )


class B2Settings(BaseSettings):
    """Backblaze B2 native API settings."""

    model_config = SettingsConfigDict(env_prefix="B2_")

    key_id: str = Field(default="", description="Application key id")
    app_key: str = Field(default="", description="Application key")
    bucket_id: str = Field(default="", description="Private bucket id")
    bucket_name: str = Field(default="", description="Private bucket name")
    api_url: str = Field(
        default="https://api.backblazeb2.com",
        description="Base URL used for b2_authorize_account",
    )


class AzureStorageSettings(BaseSettings):
    """Azure Storage settings."""

    model_config = SettingsConfigDict(env_prefix="AZURE_STORAGE_")

    connection_string: str = Field(
        default="",
        description="Azure Storage connection string",
    )
    account_url: str = Field(
        default="",
        description="Azure Storage account URL (for managed identity)",
    )
    use_managed_identity: bool = Field(
        default=False,
        description="Use Azure managed identity for authentication",
    )


class ProviderSettings(BaseSettings):
    """Generation provider selection and HTTP behaviour."""

    model_config = SettingsConfigDict(env_prefix="PROVIDER_")

    default: Literal["elevenlabs", "minimax", "noiz"] = Field(
        default="elevenlabs",
        description="Provider used when a request does not name one",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout for provider calls",
    )


class ElevenLabsSettings(BaseSettings):
    """ElevenLabs API settings."""

    model_config = SettingsConfigDict(env_prefix="ELEVENLABS_")

    api_key: str = Field(default="", description="ElevenLabs API key")
    base_url: str = Field(
        default="https://api.elevenlabs.io/v1",
        description="ElevenLabs API base URL",
    )


class MinimaxSettings(BaseSettings):
    """Minimax API settings."""

    model_config = SettingsConfigDict(env_prefix="MINIMAX_")

    api_key: str = Field(default="", description="Minimax API key")
    base_url: str = Field(
        default="https://api.minimax.io/v1",
        description="Minimax API base URL",
    )


class NoizSettings(BaseSettings):
    """Noiz API settings."""

    model_config = SettingsConfigDict(env_prefix="NOIZ_")

    api_key: str = Field(default="", description="Noiz API key")
    base_url: str = Field(
        default="https://noiz.ai/v1",
        description="Noiz API base URL",
    )


class AuthSettings(BaseSettings):
    """Identity headers forwarded by the identity provider edge."""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    user_id_header: str = Field(
        default="X-User-Id",
        description="Header carrying the authenticated external user id",
    )
    email_header: str = Field(
        default="X-User-Email",
        description="Header carrying the authenticated user's email",
    )
    name_header: str = Field(
        default="X-User-Name",
        description="Header carrying the display name, when the edge forwards one",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for logs",
    )


class APISettings(BaseSettings):
    """API server settings."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="API server port",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
    )

    service_name: str = Field(
        default="voiceforge",
        description="Service name for logging",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    b2: B2Settings = Field(default_factory=B2Settings)
    azure_storage: AzureStorageSettings = Field(default_factory=AzureStorageSettings)
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    elevenlabs: ElevenLabsSettings = Field(default_factory=ElevenLabsSettings)
    minimax: MinimaxSettings = Field(default_factory=MinimaxSettings)
    noiz: NoizSettings = Field(default_factory=NoizSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    api: APISettings = Field(default_factory=APISettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        The application settings.
    """
    return Settings()


def refresh_settings() -> Settings:
    """Clear settings cache and return fresh settings.

    Returns:
        Fresh application settings.
    """
    get_settings.cache_clear()
    return get_settings()
