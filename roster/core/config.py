"""
Centralized configuration management using Pydantic Settings.

This module provides type-safe configuration for the storage handle,
loading settings from environment variables and .env files.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError


SchemaPolicy = Literal["validate", "create", "update", "recreate"]

SCHEMA_POLICIES = ("validate", "create", "update", "recreate")


class Settings(BaseSettings):
    """
    Storage settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Credentials should never be committed to code - use .env file (gitignored).
    """

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./data/roster.db",
        description="SQLAlchemy database URL (SQLite by default, any SQLAlchemy dialect works)"
    )
    database_username: Optional[str] = Field(
        default=None,
        description="Database user; overrides the user embedded in database_url"
    )
    database_password: Optional[str] = Field(
        default=None,
        description="Database password; overrides the password embedded in database_url"
    )
    database_dialect: Optional[str] = Field(
        default=None,
        description="Expected dialect name (sqlite, postgresql, mysql...); checked against database_url"
    )
    schema_policy: SchemaPolicy = Field(
        default="create",
        description="Schema reconciliation: validate, create (if missing), update (in place) or recreate"
    )

    # Diagnostics
    echo_sql: bool = Field(
        default=False,
        description="Log every SQL statement emitted by the engine (debug only)"
    )
    log_level: str = Field(
        default="INFO",
        description="Root logging level"
    )
    log_json: bool = Field(
        default=True,
        description="Emit logs as single-line JSON objects"
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """
        Validate database URL format.

        The URL must be non-empty and parseable by SQLAlchemy. Whether the
        driver is installed or the server is reachable is only known when
        the storage handle is built.
        """
        if not v or v.strip() == "":
            raise ValueError("DATABASE_URL is required and cannot be empty")

        try:
            make_url(v)
        except ArgumentError as exc:
            raise ValueError(f"DATABASE_URL is not a valid SQLAlchemy URL: {exc}") from exc

        return v.strip()

    @field_validator("schema_policy", mode="before")
    @classmethod
    def normalize_schema_policy(cls, v: str) -> str:
        """
        Normalize schema policy spelling.

        Accepts any case and the long form 'create-if-missing' /
        'update-in-place' aliases.
        """
        if isinstance(v, str):
            v = v.strip().lower()
            aliases = {"create-if-missing": "create", "update-in-place": "update"}
            v = aliases.get(v, v)
            if v not in SCHEMA_POLICIES:
                raise ValueError(
                    f"SCHEMA_POLICY must be one of: {', '.join(SCHEMA_POLICIES)}. Got: {v!r}"
                )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a standard logging level name."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"LOG_LEVEL must be a standard logging level. Got: {v!r}")
        return level

    @model_validator(mode="after")
    def check_dialect_matches_url(self) -> "Settings":
        """
        Ensure the declared dialect agrees with the URL.

        A mismatch usually means a copy-pasted URL from another environment.
        """
        if self.database_dialect:
            backend = make_url(self.database_url).get_backend_name()
            if backend != self.database_dialect.strip().lower():
                raise ValueError(
                    f"DATABASE_DIALECT is {self.database_dialect!r} but DATABASE_URL "
                    f"uses the {backend!r} dialect"
                )
        return self

    def sqlalchemy_url(self) -> URL:
        """
        Build the final connection URL.

        Returns:
            SQLAlchemy URL with explicit credentials applied
        """
        url = make_url(self.database_url)
        if self.database_username is not None:
            url = url.set(username=self.database_username)
        if self.database_password is not None:
            url = url.set(password=self.database_password)
        return url

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).get_backend_name() == "sqlite"


# Global settings instance
# Import this instance throughout the application
settings = Settings()
