"""Event consumer settings."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_bindings() -> dict[str, list[str]]:
    return {
        "groups-events": [
            "GroupCreatedEvent",
            "UserJoinedGroupEvent",
            "UserLeftGroupEvent",
            "GroupDeletedEvent",
        ],
    }


class ConsumerSettings(BaseSettings):
    """Inbound event consumer configuration.

    Environment variables use CONSUMER_ prefix. Bindings are given as JSON:
    CONSUMER_BINDINGS='{"groups-events": ["UserJoinedGroupEvent"]}'
    """

    enabled: bool = Field(default=True, description="Run the event consumer.")
    queue_name: str = Field(
        default="chat-service.groups-events",
        min_length=1,
        max_length=200,
        description="Durable queue this service consumes from.",
    )
    bindings: dict[str, list[str]] = Field(
        default_factory=_default_bindings,
        description="Exchange name mapped to the routing keys bound to the queue.",
    )
    prefetch_count: int = Field(
        default=1,
        ge=1,
        le=1000,
        description="Unacknowledged messages allowed per channel.",
    )
    requeue_on_failure: bool = Field(
        default=True,
        description="Requeue messages whose handler raised.",
    )
    retention_days: int = Field(
        default=30,
        ge=1,
        description="Ledger rows older than this are eligible for pruning.",
    )

    model_config = SettingsConfigDict(
        env_prefix="CONSUMER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("bindings")
    @classmethod
    def _require_routing_keys(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        for exchange, keys in value.items():
            if not keys:
                msg = f"exchange '{exchange}' has no routing keys"
                raise ValueError(msg)
        return value
