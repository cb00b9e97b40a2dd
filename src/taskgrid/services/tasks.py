"""Service layer encapsulating task-related operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Sequence

from sqlmodel.ext.asyncio.session import AsyncSession

from ..errors import NotFoundError, PermissionDeniedError
from ..models import Task, TaskPriority, TaskStatus, User, UserRole
from ..repositories import TaskRepository, UserRepository
from ..repositories.scopes import task_visibility
from ..schemas.task import Attachment, ChecklistItem, TaskCreate, TaskUpdate
from .status_sync import rounded_percentage, sync_task_status

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StatusCounts:
    """Per-status task counts over one visibility scope."""

    pending: int = 0
    in_progress: int = 0
    completed: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.in_progress + self.completed

    def percentages(self) -> dict[str, int]:
        return {
            TaskStatus.PENDING.value: rounded_percentage(self.pending, self.total),
            TaskStatus.IN_PROGRESS.value: rounded_percentage(self.in_progress, self.total),
            TaskStatus.COMPLETED.value: rounded_percentage(self.completed, self.total),
        }


@dataclass(slots=True)
class DashboardData:
    by_status: dict[TaskStatus, int]
    by_priority: dict[TaskPriority, int]
    recent: list[Task]
    overdue: int


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _checklist_payload(items: Iterable[ChecklistItem]) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


def _attachments_payload(items: Iterable[Attachment]) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


class TaskService:
    """High-level business orchestration for ``Task`` entities."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repository = TaskRepository(session)
        self._user_repository = UserRepository(session)

    @property
    def repository(self) -> TaskRepository:
        return self._repository

    async def save(self, task: Task) -> Task:
        """Synchronise status and progress, then persist ``task``."""
        sync_task_status(task)
        self._session.add(task)
        await self._session.commit()
        reloaded = await self._repository.reload(task.id)  # type: ignore[arg-type]
        return reloaded if reloaded is not None else task

    async def _resolve_assignees(self, user_ids: Sequence[int]) -> list[User]:
        unique_ids = list(dict.fromkeys(user_ids))
        users = {user.id: user for user in await self._user_repository.list_by_ids(unique_ids)}
        missing = [user_id for user_id in unique_ids if user_id not in users]
        if missing:
            raise NotFoundError(f"User not found: {missing[0]}", details={"missing_user_ids": missing})
        return [users[user_id] for user_id in unique_ids]

    async def get_task(self, task_id: int) -> Task:
        task = await self._repository.get(task_id)
        if task is None:
            raise NotFoundError("Task not found.")
        return task

    @staticmethod
    def _ensure_can_touch(actor: User, task: Task, action: str) -> None:
        if UserRole(actor.role).is_admin:
            return
        if any(user.id == actor.id for user in task.assigned_to):
            return
        raise PermissionDeniedError(f"Only admins or assigned users can {action} this task.")

    async def get_task_for_viewer(self, viewer: User, task_id: int) -> Task:
        task = await self.get_task(task_id)
        self._ensure_can_touch(viewer, task, "view")
        return task

    async def create_task(self, creator: User, payload: TaskCreate) -> Task:
        """Create a task authored by ``creator``."""
        assignees = await self._resolve_assignees(payload.assigned_to)
        task = Task(
            title=payload.title.strip(),
            description=payload.description,
            priority=payload.priority,
            due_date=_as_utc(payload.due_date),
            created_by_id=creator.id,
            todo_checklist=_checklist_payload(payload.todo_checklist),
            attachments=_attachments_payload(payload.attachments),
        )
        task.assigned_to = assignees
        task = await self.save(task)
        logger.info("Task created", extra={"task_id": task.id, "assignees": len(assignees)})
        return task

    async def list_tasks(
        self,
        viewer: User,
        *,
        status: TaskStatus | None = None,
        search: str | None = None,
    ) -> tuple[list[Task], StatusCounts]:
        """Return visible tasks and the status summary of the same scope."""
        visibility = task_visibility(viewer)
        tasks = await self._repository.list_visible(visibility, status=status, search=search)
        counts = await self._repository.count_by_status(visibility)
        return tasks, StatusCounts(
            pending=counts[TaskStatus.PENDING],
            in_progress=counts[TaskStatus.IN_PROGRESS],
            completed=counts[TaskStatus.COMPLETED],
        )

    async def dashboard(self, viewer: User) -> DashboardData:
        visibility = task_visibility(viewer)
        return DashboardData(
            by_status=await self._repository.count_by_status(visibility),
            by_priority=await self._repository.count_by_priority(visibility),
            recent=await self._repository.list_recent(visibility, limit=5),
            overdue=await self._repository.count_overdue(visibility, now=datetime.now(timezone.utc)),
        )

    async def update_task(self, actor: User, task_id: int, payload: TaskUpdate) -> Task:
        """Apply ``payload``; non-admin assignees may only replace the checklist."""
        task = await self.get_task(task_id)
        self._ensure_can_touch(actor, task, "update")
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)

        if UserRole(actor.role).is_admin:
            if "title" in changes:
                task.title = payload.title.strip()  # type: ignore[union-attr]
            if "description" in changes:
                task.description = payload.description  # type: ignore[assignment]
            if "priority" in changes:
                task.priority = payload.priority  # type: ignore[assignment]
            if "due_date" in changes:
                task.due_date = _as_utc(payload.due_date)
            if "attachments" in changes:
                task.attachments = _attachments_payload(payload.attachments or [])
            if "assigned_to" in changes:
                task.assigned_to = await self._resolve_assignees(payload.assigned_to or [])
        if "todo_checklist" in changes:
            task.todo_checklist = _checklist_payload(payload.todo_checklist or [])

        task = await self.save(task)
        logger.info("Task updated", extra={"task_id": task.id, "fields": sorted(changes)})
        return task

    async def replace_checklist(self, actor: User, task_id: int, items: Sequence[ChecklistItem]) -> Task:
        task = await self.get_task(task_id)
        self._ensure_can_touch(actor, task, "update")
        task.todo_checklist = _checklist_payload(items)
        return await self.save(task)

    async def append_checklist(self, actor: User, task_id: int, items: Sequence[ChecklistItem]) -> Task:
        """Add ``items`` after the existing checklist entries."""
        task = await self.get_task(task_id)
        self._ensure_can_touch(actor, task, "update")
        task.todo_checklist = [*task.todo_checklist, *_checklist_payload(items)]
        return await self.save(task)

    async def delete_task(self, actor: User, task_id: int) -> None:
        if not UserRole(actor.role).is_super_admin:
            raise PermissionDeniedError("Only super-admin can delete tasks.")
        task = await self.get_task(task_id)
        await self._repository.delete(task)
        await self._session.commit()
        logger.info("Task deleted", extra={"task_id": task_id})


__all__ = ["DashboardData", "StatusCounts", "TaskService"]
