"""Groups feature: the producing side of the event pipeline."""

from .events import GroupCreatedEvent, GroupDeletedEvent, UserJoinedGroupEvent, UserLeftGroupEvent
from .models import Group, GroupMember, GroupMemberRole
from .service import GroupService

__all__ = [
    "Group",
    "GroupCreatedEvent",
    "GroupDeletedEvent",
    "GroupMember",
    "GroupMemberRole",
    "GroupService",
    "UserJoinedGroupEvent",
    "UserLeftGroupEvent",
]
