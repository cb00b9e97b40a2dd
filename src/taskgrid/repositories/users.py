"""Repository for interacting with user persistence models."""

from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from sqlalchemy import func
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import Task, TaskAssignee, TaskStatus, User, UserRole
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Concrete repository for CRUD operations on ``User`` entities."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> User | None:
        """Return the user whose email matches ``email`` ignoring case."""
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalars().first()

    async def get_super_admin(self) -> User | None:
        result = await self.session.execute(
            select(User).where(User.role == UserRole.SUPER_ADMIN).order_by(User.id)
        )
        return result.scalars().first()

    async def list_visible(
        self,
        visibility: ColumnElement[bool],
        *,
        search: str | None = None,
    ) -> list[User]:
        """Return users matching ``visibility``, optionally filtered by name."""
        query = select(User).where(visibility)
        if search:
            query = query.where(func.lower(User.name).contains(search.strip().lower(), autoescape=True))
        result = await self.session.execute(query.order_by(User.id))
        return list(result.scalars().all())

    async def list_by_ids(self, ids: Sequence[int]) -> list[User]:
        """Fetch all users whose IDs are contained in the provided sequence."""
        if not ids:
            return []
        result = await self.session.execute(select(User).where(User.id.in_(ids)))  # type: ignore[union-attr]
        return list(result.scalars().all())

    async def task_counts(self, user_ids: Sequence[int]) -> dict[int, dict[TaskStatus, int]]:
        """Count assigned tasks per status for each of ``user_ids``."""
        counts: dict[int, dict[TaskStatus, int]] = defaultdict(lambda: {status: 0 for status in TaskStatus})
        if not user_ids:
            return counts
        result = await self.session.execute(
            select(TaskAssignee.user_id, Task.status, func.count())
            .join(Task, Task.id == TaskAssignee.task_id)  # type: ignore[arg-type]
            .where(TaskAssignee.user_id.in_(user_ids))  # type: ignore[attr-defined]
            .group_by(TaskAssignee.user_id, Task.status)
        )
        for user_id, status, count in result.all():
            counts[user_id][TaskStatus(status)] = int(count)
        return counts

    async def unassign_from_all_tasks(self, user_id: int) -> None:
        await self.session.execute(
            TaskAssignee.__table__.delete().where(TaskAssignee.__table__.c.user_id == user_id)  # type: ignore[attr-defined]
        )

    async def clear_created_by(self, user_id: int) -> None:
        """Detach ``user_id`` as creator of users and tasks before it is removed."""
        await self.session.execute(
            Task.__table__.update()  # type: ignore[attr-defined]
            .where(Task.__table__.c.created_by_id == user_id)  # type: ignore[attr-defined]
            .values(created_by_id=None)
        )
        await self.session.execute(
            User.__table__.update()  # type: ignore[attr-defined]
            .where(User.__table__.c.created_by_id == user_id)  # type: ignore[attr-defined]
            .values(created_by_id=None)
        )
