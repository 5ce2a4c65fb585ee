"""Service layer for group operations.

Each operation loads or creates the ``Group`` aggregate, applies the
change and commits it together with its outbox records in one unit of
work.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from groupchat_service.core.exceptions import NotFoundError
from groupchat_service.features.groups.models import Group, GroupMember, GroupMemberRole
from groupchat_service.infra.events.outbox.writer import OutboxWriter, unit_of_work

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


class GroupService:
    """Orchestrates group operations on top of the outbox unit of work."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        writer: OutboxWriter | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._writer = writer or OutboxWriter()

    async def create_group(
        self,
        *,
        name: str,
        owner_id: str,
        description: str | None = None,
    ) -> Group:
        """Create a group; its owner becomes the first member.

        Raises:
            DomainRuleError: If the name or owner is invalid.
            OutboxWriteError: If the events could not be stored.
        """
        async with unit_of_work(self._session_factory, self._writer) as uow:
            group = Group.create(name=name, owner_id=owner_id, description=description)
            uow.session.add(group)
            uow.track(group)

        logger.info(
            "Group created",
            extra={"group_id": group.id, "owner_id": owner_id, "operation": "service.create_group"},
        )
        return group

    async def join_group(
        self,
        group_id: str,
        user_id: str,
        *,
        role: GroupMemberRole = GroupMemberRole.MEMBER,
    ) -> None:
        async with unit_of_work(self._session_factory, self._writer) as uow:
            group = await self._get_or_raise(uow.session, group_id)
            group.add_member(user_id, role)
            uow.track(group)

        logger.info(
            "User joined group",
            extra={"group_id": group_id, "user_id": user_id, "operation": "service.join_group"},
        )

    async def leave_group(self, group_id: str, user_id: str) -> None:
        async with unit_of_work(self._session_factory, self._writer) as uow:
            group = await self._get_or_raise(uow.session, group_id)
            group.remove_member(user_id)
            uow.track(group)

        logger.info(
            "User left group",
            extra={"group_id": group_id, "user_id": user_id, "operation": "service.leave_group"},
        )

    async def delete_group(self, group_id: str) -> None:
        """Delete a group with its members and record ``GroupDeletedEvent``."""
        async with unit_of_work(self._session_factory, self._writer) as uow:
            group = await self._get_or_raise(uow.session, group_id)
            group.mark_for_deletion()
            uow.track(group)
            await uow.session.delete(group)

        logger.info(
            "Group deleted",
            extra={"group_id": group_id, "operation": "service.delete_group"},
        )

    async def get_group(self, group_id: str) -> Group | None:
        async with self._session_factory() as session:
            return await session.get(Group, group_id)

    async def list_groups_for_user(self, user_id: str) -> list[Group]:
        """Groups the user is a member of, newest first."""
        stmt = (
            select(Group)
            .join(GroupMember, GroupMember.group_id == Group.id)
            .where(GroupMember.user_id == user_id)
            .order_by(Group.created_at.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().unique().all())

    @staticmethod
    async def _get_or_raise(session: AsyncSession, group_id: str) -> Group:
        group = await session.get(Group, group_id)
        if group is None:
            raise NotFoundError("Group", group_id)
        return group


__all__ = ["GroupService"]
