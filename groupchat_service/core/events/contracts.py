"""Event contracts published by the other services of the backend.

The auth, chat and audio services emit these through their own outboxes.
They are declared here so a consumer in this service can bind to their
routing keys and validate their payloads. Group events live with the
groups feature.
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar

from pydantic import Field

from groupchat_service.core.events.base import DomainEvent
from groupchat_service.core.events.registry import event_registry

# ──────────────────────────────────────────────────────────────
# Auth service ("auth-events")
# ──────────────────────────────────────────────────────────────


@event_registry.register
class UserRegisteredEvent(DomainEvent):
    """A new account was created."""

    event_type: ClassVar[str] = "UserRegisteredEvent"

    user_id: str
    nick_name: str
    email: str
    registered_at: datetime


# ──────────────────────────────────────────────────────────────
# Chat service ("chat-messages")
# ──────────────────────────────────────────────────────────────


@event_registry.register
class MessageSentEvent(DomainEvent):
    """A chat message was stored in a group."""

    event_type: ClassVar[str] = "MessageSentEvent"

    message_id: str
    group_id: str
    user_id: str
    content: str = Field(max_length=4000)


# ──────────────────────────────────────────────────────────────
# Audio service ("audio-events")
# ──────────────────────────────────────────────────────────────


@event_registry.register
class AudioChannelCreatedEvent(DomainEvent):
    event_type: ClassVar[str] = "AudioChannelCreatedEvent"

    channel_id: str
    group_id: str
    name: str
    created_at: datetime


@event_registry.register
class AudioChannelDeletedEvent(DomainEvent):
    event_type: ClassVar[str] = "AudioChannelDeletedEvent"

    channel_id: str
    group_id: str
    deleted_at: datetime


@event_registry.register
class UserJoinedAudioChannelEvent(DomainEvent):
    event_type: ClassVar[str] = "UserJoinedAudioChannelEvent"

    channel_id: str
    user_id: str
    joined_at: datetime


@event_registry.register
class UserLeftAudioChannelEvent(DomainEvent):
    event_type: ClassVar[str] = "UserLeftAudioChannelEvent"

    channel_id: str
    user_id: str
    left_at: datetime


@event_registry.register
class AudioParticipantJoined(DomainEvent):
    """A participant entered an audio room; consumed by notifications."""

    event_type: ClassVar[str] = "AudioParticipantJoined"

    group_id: str
    channel_id: str
    user_id: str
    display_name: str
    participant_id: int


@event_registry.register
class AudioParticipantLeft(DomainEvent):
    event_type: ClassVar[str] = "AudioParticipantLeft"

    group_id: str
    channel_id: str
    user_id: str
    participant_id: int


__all__ = [
    "AudioChannelCreatedEvent",
    "AudioChannelDeletedEvent",
    "AudioParticipantJoined",
    "AudioParticipantLeft",
    "MessageSentEvent",
    "UserJoinedAudioChannelEvent",
    "UserLeftAudioChannelEvent",
    "UserRegisteredEvent",
]
