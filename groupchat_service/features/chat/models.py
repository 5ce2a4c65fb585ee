"""Membership projection kept by the chat side from group events."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from groupchat_service.core.database.base import Base, UUIDPKMixin, utcnow


class ChatGroupMember(Base, UUIDPKMixin):
    """Who may read and post in a group's chat.

    Rows are created and deleted only by the group event handlers.
    """

    __tablename__ = "chat_group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id"),)

    group_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="Member")
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"ChatGroupMember(group_id={self.group_id!r}, user_id={self.user_id!r})"


__all__ = ["ChatGroupMember"]
