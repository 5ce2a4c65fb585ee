"""Domain events of the groups feature.

Published on the ``groups-events`` exchange with the class name as routing
key. The chat and audio services keep their membership projections in
sync from these.
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar

from pydantic import Field

from groupchat_service.core.events import DomainEvent, event_registry


@event_registry.register
class GroupCreatedEvent(DomainEvent):
    """Published when a new group is created.

    Always followed by a ``UserJoinedGroupEvent`` for the owner.

    Example:
        event = GroupCreatedEvent(
            group_id="5c1d...",
            name="Design",
            owner_id="u-1",
            created_at=utcnow(),
        )
    """

    event_type: ClassVar[str] = "GroupCreatedEvent"
    event_version: ClassVar[int] = 1

    group_id: str = Field(description="Identifier of the created group")
    name: str = Field(description="Group name")
    owner_id: str = Field(description="User who created and owns the group")
    created_at: datetime = Field(description="When the group was created")


@event_registry.register
class GroupDeletedEvent(DomainEvent):
    """Published when a group is deleted, members included."""

    event_type: ClassVar[str] = "GroupDeletedEvent"
    event_version: ClassVar[int] = 1

    group_id: str = Field(description="Identifier of the deleted group")
    deleted_at: datetime = Field(description="When the group was deleted")


@event_registry.register
class UserJoinedGroupEvent(DomainEvent):
    """Published when a user becomes a member of a group."""

    event_type: ClassVar[str] = "UserJoinedGroupEvent"
    event_version: ClassVar[int] = 1

    group_id: str = Field(description="Group joined")
    user_id: str = Field(description="User who joined")
    role: str = Field(default="Member", description="Owner or Member")
    joined_at: datetime = Field(description="When the user joined")


@event_registry.register
class UserLeftGroupEvent(DomainEvent):
    event_type: ClassVar[str] = "UserLeftGroupEvent"
    event_version: ClassVar[int] = 1

    group_id: str = Field(description="Group left")
    user_id: str = Field(description="User who left")
    left_at: datetime = Field(description="When the user left")


__all__ = [
    "GroupCreatedEvent",
    "GroupDeletedEvent",
    "UserJoinedGroupEvent",
    "UserLeftGroupEvent",
]
