"""Repository for interacting with task persistence models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import Task, TaskPriority, TaskStatus
from .base import BaseRepository


class TaskRepository(BaseRepository[Task]):
    """Concrete repository encapsulating ``Task`` persistence operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Task)

    async def list_visible(
        self,
        visibility: ColumnElement[bool],
        *,
        status: TaskStatus | None = None,
        search: str | None = None,
    ) -> list[Task]:
        """Return tasks matching ``visibility`` and the optional filters."""
        query = select(Task).where(visibility)
        if status is not None:
            query = query.where(Task.status == status)
        if search:
            query = query.where(func.lower(Task.title).contains(search.strip().lower(), autoescape=True))
        result = await self.session.execute(query.order_by(Task.id))
        return list(result.scalars().all())

    async def count_by_status(self, visibility: ColumnElement[bool]) -> dict[TaskStatus, int]:
        result = await self.session.execute(
            select(Task.status, func.count()).where(visibility).group_by(Task.status)
        )
        counts = {status: 0 for status in TaskStatus}
        for status, count in result.all():
            counts[TaskStatus(status)] = int(count)
        return counts

    async def count_by_priority(self, visibility: ColumnElement[bool]) -> dict[TaskPriority, int]:
        result = await self.session.execute(
            select(Task.priority, func.count()).where(visibility).group_by(Task.priority)
        )
        counts = {priority: 0 for priority in TaskPriority}
        for priority, count in result.all():
            counts[TaskPriority(priority)] = int(count)
        return counts

    async def list_recent(self, visibility: ColumnElement[bool], *, limit: int = 5) -> list[Task]:
        """Return the most recently created visible tasks, newest first."""
        result = await self.session.execute(
            select(Task)
            .where(visibility)
            .order_by(Task.created_at.desc(), Task.id.desc())  # type: ignore[attr-defined,union-attr]
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_overdue(self, visibility: ColumnElement[bool], *, now: datetime) -> int:
        """Count visible tasks that are not completed and whose due date has passed."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Task)
            .where(visibility)
            .where(Task.status != TaskStatus.COMPLETED)
            .where(Task.due_date.is_not(None))  # type: ignore[union-attr]
            .where(Task.due_date < now)  # type: ignore[operator]
        )
        return int(result.scalar_one())

    async def find_by_title_and_creator(self, title: str, created_by_id: int) -> Task | None:
        """Return the task the import treats as the same record, if any."""
        result = await self.session.execute(
            select(Task)
            .where(Task.title == title, Task.created_by_id == created_by_id)
            .order_by(Task.id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()
