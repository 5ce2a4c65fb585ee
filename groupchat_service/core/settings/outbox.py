"""Outbox publisher settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OutboxSettings(BaseSettings):
    """Polling publisher configuration.

    Environment variables use OUTBOX_ prefix.
    Example: OUTBOX_BATCH_SIZE=50, OUTBOX_EXCHANGE_NAME=chat-events
    """

    enabled: bool = Field(default=True, description="Run the outbox publisher.")
    exchange_name: str = Field(
        default="groups-events",
        min_length=1,
        max_length=100,
        pattern=r"^[a-zA-Z0-9_.-]+$",
        description="Durable direct exchange the outbox publishes to.",
    )
    poll_interval: float = Field(
        default=5.0,
        gt=0,
        le=300.0,
        description="Seconds between polling cycles.",
    )
    batch_size: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Maximum records published per polling cycle.",
    )
    max_retry_count: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Failed publishes before a record is quarantined as Failed.",
    )
    error_message_max_length: int = Field(
        default=1000,
        ge=50,
        le=10_000,
        description="Stored error messages are truncated to this length.",
    )
    shutdown_timeout: float = Field(
        default=30.0,
        gt=0,
        le=600.0,
        description="Seconds to wait for the in-flight batch on shutdown.",
    )
    retention_days: int = Field(
        default=7,
        ge=1,
        description="Published records older than this are eligible for purge.",
    )

    model_config = SettingsConfigDict(
        env_prefix="OUTBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
