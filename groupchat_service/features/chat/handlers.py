"""Handlers applying group events to the chat membership projection.

Every handler runs inside the consumer's transaction and leaves the
commit to it. Handlers tolerate state that is already in place (a member
that exists, a member that is gone) because events of different types may
arrive in any order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, select

from groupchat_service.features.chat.models import ChatGroupMember
from groupchat_service.features.groups.events import (
    GroupCreatedEvent,
    GroupDeletedEvent,
    UserJoinedGroupEvent,
    UserLeftGroupEvent,
)
from groupchat_service.infra.messaging.handlers import EventHandlerRegistry

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

chat_handlers = EventHandlerRegistry()


async def _add_member(
    session: AsyncSession,
    *,
    group_id: str,
    user_id: str,
    role: str,
    joined_at: datetime,
) -> bool:
    stmt = select(ChatGroupMember.id).where(
        ChatGroupMember.group_id == group_id,
        ChatGroupMember.user_id == user_id,
    )
    if (await session.execute(stmt)).scalar_one_or_none() is not None:
        logger.debug(
            "Chat member already exists",
            extra={"group_id": group_id, "user_id": user_id},
        )
        return False

    session.add(ChatGroupMember(group_id=group_id, user_id=user_id, role=role, joined_at=joined_at))
    return True


@chat_handlers.on(GroupCreatedEvent)
async def handle_group_created(session: AsyncSession, event: GroupCreatedEvent) -> None:
    """Give the owner access to the new group's chat."""
    await _add_member(
        session,
        group_id=event.group_id,
        user_id=event.owner_id,
        role="Owner",
        joined_at=event.created_at,
    )


@chat_handlers.on(UserJoinedGroupEvent)
async def handle_user_joined(session: AsyncSession, event: UserJoinedGroupEvent) -> None:
    added = await _add_member(
        session,
        group_id=event.group_id,
        user_id=event.user_id,
        role=event.role or "Member",
        joined_at=event.joined_at,
    )
    if added:
        logger.info(
            "Chat member added",
            extra={"group_id": event.group_id, "user_id": event.user_id, "role": event.role},
        )


@chat_handlers.on(UserLeftGroupEvent)
async def handle_user_left(session: AsyncSession, event: UserLeftGroupEvent) -> None:
    result = await session.execute(
        delete(ChatGroupMember).where(
            ChatGroupMember.group_id == event.group_id,
            ChatGroupMember.user_id == event.user_id,
        ),
    )
    logger.info(
        "Chat member removed",
        extra={"group_id": event.group_id, "user_id": event.user_id, "removed": result.rowcount},
    )


@chat_handlers.on(GroupDeletedEvent)
async def handle_group_deleted(session: AsyncSession, event: GroupDeletedEvent) -> None:
    """Revoke every membership of the deleted group."""
    result = await session.execute(
        delete(ChatGroupMember).where(ChatGroupMember.group_id == event.group_id),
    )
    logger.info(
        "Chat members of deleted group removed",
        extra={"group_id": event.group_id, "removed": result.rowcount},
    )


__all__ = [
    "chat_handlers",
    "handle_group_created",
    "handle_group_deleted",
    "handle_user_joined",
    "handle_user_left",
]
