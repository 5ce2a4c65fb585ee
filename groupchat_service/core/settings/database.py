"""Database connection settings.

Supports both a full SQLAlchemy URL and individual component fields.
A full URL (``DATABASE_URL``) is used verbatim, which is how tests and
local runs point the service at SQLite through aiosqlite.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote_plus

from pydantic import Field, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Business database settings.

    Environment variables use DB_ prefix, except the URL override which
    is read from DATABASE_URL.

    The outbox and idempotency ledger live in this database, next to the
    business tables, so a single transaction covers both.
    """

    # ─────────────────────────────────────────────────────
    # Optional URL override
    # ─────────────────────────────────────────────────────
    database_url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description="Complete SQLAlchemy URL; overrides the component fields.",
    )

    # ─────────────────────────────────────────────────────
    # Connection parameters (components)
    # ─────────────────────────────────────────────────────
    host: str = Field(default="localhost", min_length=1, max_length=255)
    port: int = Field(default=5432, ge=1, le=65535)
    user: str = Field(default="postgres", min_length=1, max_length=100)
    password: SecretStr = Field(default=SecretStr("postgres"))
    name: str = Field(default="groupchat", min_length=1, max_length=100)
    driver: str = Field(
        default="psycopg",
        description="SQLAlchemy driver used with the postgresql dialect.",
    )

    # ─────────────────────────────────────────────────────
    # Engine behaviour
    # ─────────────────────────────────────────────────────
    echo: bool = Field(default=False, description="Log every SQL statement.")
    pool_size: int = Field(default=10, ge=1, le=200)
    max_overflow: int = Field(default=10, ge=0, le=200)
    pool_timeout: float = Field(default=30.0, gt=0)
    pool_recycle: int = Field(default=1800, ge=-1)
    pool_pre_ping: bool = Field(default=True)
    create_tables: bool = Field(
        default=False,
        description="Create missing tables on startup (development without migrations).",
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @computed_field  # type: ignore[misc]
    @property
    def url(self) -> str:
        """Effective async SQLAlchemy URL."""
        if self.database_url:
            return self.database_url
        safe_password = quote_plus(self.password.get_secret_value())
        return (
            f"postgresql+{self.driver}://{self.user}:{safe_password}"
            f"@{self.host}:{self.port}/{self.name}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def get_sqlalchemy_url(self) -> str:
        return self.url

    def engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``create_async_engine``.

        SQLite does not use a sized connection pool, so pool options are
        only passed for server databases.
        """
        kwargs: dict[str, Any] = {"echo": self.echo}
        if self.is_sqlite:
            return kwargs
        kwargs.update(
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_timeout=self.pool_timeout,
            pool_recycle=self.pool_recycle,
            pool_pre_ping=self.pool_pre_ping,
        )
        return kwargs
