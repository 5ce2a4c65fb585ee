"""SQLAlchemy models for the groups feature.

``Group`` is the aggregate root. Every membership change goes through it,
and each change records the domain event describing it. The events reach
the outbox when the aggregate is tracked by a unit of work.
"""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupchat_service.core.database.base import Base, CreatedAtMixin, UUIDPKMixin, utcnow
from groupchat_service.core.events import HasDomainEvents
from groupchat_service.core.exceptions import DomainRuleError
from groupchat_service.features.groups.events import (
    GroupCreatedEvent,
    GroupDeletedEvent,
    UserJoinedGroupEvent,
    UserLeftGroupEvent,
)

GROUP_NAME_MAX_LENGTH = 100
GROUP_DESCRIPTION_MAX_LENGTH = 500


class GroupMemberRole(enum.StrEnum):
    OWNER = "Owner"
    MEMBER = "Member"


class Group(Base, CreatedAtMixin, HasDomainEvents):
    """Chat group with its members."""

    __tablename__ = "groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(GROUP_NAME_MAX_LENGTH), nullable=False)
    description: Mapped[str | None] = mapped_column(
        String(GROUP_DESCRIPTION_MAX_LENGTH),
        nullable=True,
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    members: Mapped[list[GroupMember]] = relationship(
        back_populates="group",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="GroupMember.created_at",
    )

    @classmethod
    def create(
        cls,
        *,
        name: str,
        owner_id: str,
        description: str | None = None,
        group_id: str | None = None,
    ) -> Group:
        """Create a group owned by ``owner_id``.

        Records ``GroupCreatedEvent`` and the owner's ``UserJoinedGroupEvent``.

        Raises:
            DomainRuleError: If the name or owner is invalid.
        """
        name = (name or "").strip()
        if not name:
            msg = "Group name cannot be empty"
            raise DomainRuleError(msg)
        if len(name) > GROUP_NAME_MAX_LENGTH:
            msg = f"Group name cannot exceed {GROUP_NAME_MAX_LENGTH} characters"
            raise DomainRuleError(msg)
        if not owner_id or not owner_id.strip():
            msg = "Owner ID cannot be empty"
            raise DomainRuleError(msg)
        if description is not None:
            description = description.strip()
            if len(description) > GROUP_DESCRIPTION_MAX_LENGTH:
                msg = f"Description cannot exceed {GROUP_DESCRIPTION_MAX_LENGTH} characters"
                raise DomainRuleError(msg)

        now = utcnow()
        group = cls(
            id=group_id or str(uuid.uuid4()),
            name=name,
            description=description,
            owner_id=owner_id,
            created_at=now,
        )
        group.members.append(
            GroupMember(user_id=owner_id, role=GroupMemberRole.OWNER.value, created_at=now),
        )
        group.record_event(
            GroupCreatedEvent(group_id=group.id, name=name, owner_id=owner_id, created_at=now),
        )
        group.record_event(
            UserJoinedGroupEvent(
                group_id=group.id,
                user_id=owner_id,
                role=GroupMemberRole.OWNER.value,
                joined_at=now,
            ),
        )
        return group

    def find_member(self, user_id: str) -> GroupMember | None:
        return next((m for m in self.members if m.user_id == user_id), None)

    def add_member(self, user_id: str, role: GroupMemberRole = GroupMemberRole.MEMBER) -> GroupMember:
        """Add a member and record ``UserJoinedGroupEvent``.

        Raises:
            DomainRuleError: If the user id is empty or already a member.
        """
        if not user_id or not user_id.strip():
            msg = "User ID cannot be empty"
            raise DomainRuleError(msg)
        if self.find_member(user_id) is not None:
            msg = f"User {user_id} is already a member of this group"
            raise DomainRuleError(msg, extra={"group_id": self.id, "user_id": user_id})

        now = utcnow()
        member = GroupMember(user_id=user_id, role=GroupMemberRole(role).value, created_at=now)
        self.members.append(member)
        self.record_event(
            UserJoinedGroupEvent(group_id=self.id, user_id=user_id, role=member.role, joined_at=now),
        )
        return member

    def remove_member(self, user_id: str) -> None:
        """Remove a member and record ``UserLeftGroupEvent``.

        Raises:
            DomainRuleError: If the user is not a member.
        """
        member = self.find_member(user_id)
        if member is None:
            msg = f"User {user_id} is not a member of this group"
            raise DomainRuleError(msg, extra={"group_id": self.id, "user_id": user_id})

        self.members.remove(member)
        self.record_event(UserLeftGroupEvent(group_id=self.id, user_id=user_id, left_at=utcnow()))

    def mark_for_deletion(self) -> None:
        self.record_event(GroupDeletedEvent(group_id=self.id, deleted_at=utcnow()))

    def __repr__(self) -> str:
        return f"Group(id={self.id!r}, name={self.name!r}, members={len(self.members)})"


class GroupMember(Base, UUIDPKMixin, CreatedAtMixin):
    """Membership of one user in one group."""

    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id"),)

    group_id: Mapped[str] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=GroupMemberRole.MEMBER.value,
    )

    group: Mapped[Group] = relationship(back_populates="members")


__all__ = ["Group", "GroupMember", "GroupMemberRole"]
