"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        BUILDFLOW_DB_HOST: Database host (default: localhost)
        BUILDFLOW_DB_PORT: Database port (default: 5432)
        BUILDFLOW_DB_DATABASE: Database name (default: buildflow)
        BUILDFLOW_DB_USERNAME: Database user (default: buildflow)
        BUILDFLOW_DB_PASSWORD: Database password (required in production)
        BUILDFLOW_DB_POOL_MIN_CONNECTIONS: Minimum connections in pool (default: 2)
        BUILDFLOW_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="BUILDFLOW_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="buildflow", description="Database name")
    username: str = Field(default="buildflow", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_min_connections: int = Field(
        default=2,
        description="Minimum connections in pool",
        ge=1,
        le=100,
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "DatabaseSettings":
        """Validate pool max >= min."""
        if self.pool_max_connections < self.pool_min_connections:
            raise ValueError(
                f"pool_max_connections ({self.pool_max_connections}) must be >= "
                f"pool_min_connections ({self.pool_min_connections})"
            )
        return self

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class RelaySettings(BaseSettings):
    """Event relay settings.

    Environment variables:
        BUILDFLOW_RELAY_BATCH_SIZE: Outbox rows per relay batch (default: 15)
        BUILDFLOW_RELAY_MAX_ATTEMPTS: Attempts before a row is dead-lettered (default: 10)
        BUILDFLOW_RELAY_POLL_INTERVAL_SECONDS: Delay between batches (default: 2)
        BUILDFLOW_RELAY_METRICS_INTERVAL_SECONDS: Delay between metrics logs (default: 60)
        BUILDFLOW_RELAY_METRICS_SAMPLE_SIZE: Published rows sampled for lag (default: 100)
    """

    model_config = SettingsConfigDict(
        env_prefix="BUILDFLOW_RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    batch_size: int = Field(default=15, ge=1, le=1000)
    max_attempts: int = Field(default=10, ge=1)
    poll_interval_seconds: float = Field(default=2.0, gt=0)
    metrics_interval_seconds: float = Field(default=60.0, gt=0)
    metrics_sample_size: int = Field(default=100, ge=1)


class ConsumerSettings(BaseSettings):
    """Default consumer settings, applied to every registered consumer.

    Environment variables:
        BUILDFLOW_CONSUMER_BATCH_SIZE: Events per poll (default: 10)
        BUILDFLOW_CONSUMER_MAX_ATTEMPTS: Attempts before an event is dead-lettered (default: 10)
        BUILDFLOW_CONSUMER_POLL_INTERVAL_SECONDS: Delay between polls (default: 5)
        BUILDFLOW_CONSUMER_ACTIVITY_ENABLED: Register the event activity consumer (default: true)
        BUILDFLOW_CONSUMER_ACTIVITY_SCHEMA_PREFIX: Schema prefix it subscribes to (default: all)
    """

    model_config = SettingsConfigDict(
        env_prefix="BUILDFLOW_CONSUMER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    batch_size: int = Field(default=10, ge=1, le=1000)
    max_attempts: int = Field(default=10, ge=1)
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    activity_enabled: bool = True
    activity_schema_prefix: str = ""


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_prefix="BUILDFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Buildflow Events", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    workers_enabled: bool = Field(
        default=True,
        description="Run the relay and consumer workers inside the API process",
    )
    event_store: Literal["postgres", "memory"] = Field(
        default="postgres",
        description="Backing store for the outbox, event log and DLQ",
    )

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()

    @property
    def relay(self) -> RelaySettings:
        """Get relay settings."""
        return get_relay_settings()

    @property
    def consumer(self) -> ConsumerSettings:
        """Get consumer settings."""
        return get_consumer_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_relay_settings() -> RelaySettings:
    """Get cached relay settings."""
    return RelaySettings()


@lru_cache
def get_consumer_settings() -> ConsumerSettings:
    """Get cached consumer settings."""
    return ConsumerSettings()
