"""Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env files.
Supports component-specific settings with shared base configuration.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational backend configuration."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = "localhost"
    port: int = 5432
    user: str = "depgraph"
    password: SecretStr = SecretStr("depgraph")
    database: str = "depgraph"

    # Full SQLAlchemy URL override (e.g. sqlite+aiosqlite:///depgraph.db)
    url: str | None = None

    # Connection pool settings
    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0, le=50)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=1800, ge=60)

    # Per-statement deadline passed to the driver
    command_timeout: int = Field(default=60, ge=1)

    echo: bool = False

    @property
    def async_url(self) -> str:
        """Construct async connection URL."""
        if self.url:
            return self.url
        password = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{password}@{self.host}:{self.port}/{self.database}"

    @property
    def sync_url(self) -> str:
        """Construct sync connection URL (for Alembic)."""
        if self.url:
            return self.url.replace("+asyncpg", "").replace("+aiosqlite", "")
        password = self.password.get_secret_value()
        return f"postgresql://{self.user}:{password}@{self.host}:{self.port}/{self.database}"

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured backend is SQLite."""
        return self.async_url.startswith("sqlite")


class GraphSettings(BaseSettings):
    """Graph ingestion engine configuration."""

    model_config = SettingsConfigDict(env_prefix="GRAPH_")

    backend: Literal["sql", "memory"] = "sql"

    # composite: "local-remote-module-lport-rport", sha256: hex digest of it
    identity_scheme: Literal["composite", "sha256"] = "composite"

    # upsert merges nodes by id; insert_only rejects duplicates via signatures
    node_discipline: Literal["upsert", "insert_only"] = "upsert"

    cascade_unlink: bool = Field(
        default=True,
        description="Delete a connection when its last edge is unlinked",
    )
    record_observations: bool = Field(
        default=False,
        description="Append every ingested record to the observation audit log",
    )
    adjacency_enabled: bool = True

    max_batch_size: int = Field(default=5000, ge=1, le=100000)


class APISettings(BaseSettings):
    """HTTP API configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8080
    workers: int = Field(default=1, ge=1, le=32)
    reload: bool = False

    # Stored as comma-separated string, converted to list via property
    cors_origins_str: str = Field(default="http://localhost:3000", alias="cors_origins")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    include_timestamp: bool = True
    include_caller: bool = True


class Settings(BaseSettings):
    """Main application settings aggregating all configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application info
    app_name: str = "depgraph"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Sub-configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    graph: GraphSettings = Field(default_factory=GraphSettings)
    api: APISettings = Field(default_factory=APISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
