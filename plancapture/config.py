"""
Configuration management for plancapture.

Loads configuration from environment variables with support for .env files.
Uses Pydantic Settings for validation and type coercion.
"""

import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SystemType(str, Enum):
    """Deployment types of the monitored Postgres server."""

    SELF_HOSTED = "self_hosted"
    AMAZON_RDS = "amazon_rds"
    GOOGLE_CLOUDSQL = "google_cloudsql"
    AZURE_DATABASE = "azure_database"
    HEROKU = "heroku"


class ServerConfig:
    """Connection and monitoring scope for one Postgres server."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        db_name: str,
        db_all_names: bool = False,
        db_extra_names: list[str] | None = None,
        sslmode: str = "prefer",
        system_type: SystemType = SystemType.SELF_HOSTED,
        application_name: str = "plancapture",
        connect_timeout: int = 10,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.db_name = db_name
        self.db_all_names = db_all_names
        self.db_extra_names = list(db_extra_names or [])
        self.sslmode = sslmode
        self.system_type = SystemType(system_type)
        self.application_name = application_name
        self.connect_timeout = connect_timeout

    def is_monitored(self, database: str) -> bool:
        """Whether samples attributed to ``database`` fall within the monitored scope."""
        return (
            database == ""
            or database == self.db_name
            or self.db_all_names
            or database in self.db_extra_names
        )

    def resolve_database(self, database: str) -> str:
        """Map the empty "default database" name to the configured database."""
        return database or self.db_name

    def get_connection_kwargs(self, database: str) -> dict[str, Any]:
        """Keyword arguments for ``psycopg2.connect`` targeting ``database``."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "dbname": self.resolve_database(database),
            "sslmode": self.sslmode,
            "application_name": self.application_name,
            "connect_timeout": self.connect_timeout,
        }

    def __repr__(self) -> str:
        return (
            f"ServerConfig(host={self.host}, port={self.port}, db_name={self.db_name}, "
            f"system_type={self.system_type.value})"
        )


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    The monitored server is described by the DB_* variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Postgres connection
    db_host: str = Field(default="localhost", description="Postgres host")
    db_port: int = Field(default=5432, description="Postgres port")
    db_username: str = Field(default="postgres", description="Postgres user")
    db_password: str = Field(default="", description="Postgres password")
    db_name: str = Field(default="postgres", description="Default monitored database")
    db_sslmode: str = Field(default="prefer", description="libpq sslmode")
    application_name: str = Field(default="plancapture", description="Reported application_name")
    connect_timeout: int = Field(default=10, ge=1, description="Connect timeout in seconds")

    # Monitoring scope
    db_all_names: bool = Field(default=False, description="Monitor every database on the server")
    db_extra_names: str = Field(
        default="", description="Comma-separated list of additional monitored databases"
    )
    system_type: SystemType = Field(
        default=SystemType.SELF_HOSTED, description="Deployment type of the server"
    )

    # Processing
    explain_workers: int = Field(
        default=1, ge=1, description="Databases processed concurrently"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str | None = Field(default=None, description="Log file path")

    @property
    def extra_names(self) -> list[str]:
        """Parsed DB_EXTRA_NAMES entries."""
        return [name.strip() for name in self.db_extra_names.split(",") if name.strip()]

    @property
    def server(self) -> ServerConfig:
        """Get the configured server."""
        return ServerConfig(
            host=self.db_host,
            port=self.db_port,
            user=self.db_username,
            password=self.db_password,
            db_name=self.db_name,
            db_all_names=self.db_all_names,
            db_extra_names=self.extra_names,
            sslmode=self.db_sslmode,
            system_type=self.system_type,
            application_name=self.application_name,
            connect_timeout=self.connect_timeout,
        )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper_v


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    env_file = os.environ.get("PLANCAPTURE_ENV_FILE")
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from a specific .env file.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Settings: Application settings instance
    """
    if env_file:
        os.environ["PLANCAPTURE_ENV_FILE"] = str(env_file)
    # Clear cache to reload
    get_settings.cache_clear()
    return get_settings()
