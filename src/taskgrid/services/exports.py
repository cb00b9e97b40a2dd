"""Spreadsheet exports of users and tasks."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings
from ..errors import PermissionDeniedError
from ..interchange import (
    TASK_COLUMNS,
    TASKS_SHEET,
    USER_COLUMNS,
    USERS_SHEET,
    SheetSpec,
    build_workbook,
    format_task_row,
    format_user_row,
)
from ..models import Task, User, UserRole
from ..repositories import TaskRepository, UserRepository
from ..repositories.scopes import ExportKind, export_filename, task_visibility, user_visibility

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExportFile:
    filename: str
    content: bytes


class ExportService:
    """Build xlsx downloads scoped to what the caller may see."""

    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self._settings = settings
        self._users = UserRepository(session)
        self._tasks = TaskRepository(session)

    @staticmethod
    def _ensure_admin(viewer: User) -> None:
        if not UserRole(viewer.role).is_admin:
            raise PermissionDeniedError("Access denied.")

    def _users_sheet(self, users: list[User]) -> SheetSpec:
        rows = [
            format_user_row(
                user,
                admin_invite_token=self._settings.admin_invite_token,
                include_sensitive=self._settings.export_sensitive_fields,
            )
            for user in users
        ]
        return SheetSpec(title=USERS_SHEET, columns=USER_COLUMNS, rows=rows)

    def _tasks_sheet(self, tasks: list[Task]) -> SheetSpec:
        rows = [
            format_task_row(
                task,
                date_format=self._settings.export_date_format,
                datetime_format=self._settings.export_datetime_format,
            )
            for task in tasks
        ]
        return SheetSpec(title=TASKS_SHEET, columns=TASK_COLUMNS, rows=rows)

    def _finish(self, viewer: User, kind: ExportKind, sheets: list[SheetSpec]) -> ExportFile:
        filename = export_filename(viewer, kind)
        logger.info(
            "Export generated",
            extra={"kind": kind, "export_filename": filename, "sheets": [sheet.title for sheet in sheets]},
        )
        return ExportFile(filename=filename, content=build_workbook(sheets))

    async def _visible_users(self, viewer: User) -> list[User]:
        return await self._users.list_visible(user_visibility(viewer))

    async def _visible_tasks(self, viewer: User) -> list[Task]:
        return await self._tasks.list_visible(task_visibility(viewer))

    def users_template(self, viewer: User) -> ExportFile:
        """Header-only Users sheet, available to any authenticated caller."""
        return self._finish(viewer, "users_template", [SheetSpec(title=USERS_SHEET, columns=USER_COLUMNS)])

    async def users(self, viewer: User) -> ExportFile:
        self._ensure_admin(viewer)
        return self._finish(viewer, "users", [self._users_sheet(await self._visible_users(viewer))])

    async def tasks(self, viewer: User) -> ExportFile:
        self._ensure_admin(viewer)
        return self._finish(viewer, "tasks", [self._tasks_sheet(await self._visible_tasks(viewer))])

    async def users_with_task_template(self, viewer: User) -> ExportFile:
        self._ensure_admin(viewer)
        sheets = [
            self._users_sheet(await self._visible_users(viewer)),
            SheetSpec(title=TASKS_SHEET, columns=TASK_COLUMNS),
        ]
        return self._finish(viewer, "users_task_template", sheets)

    async def users_and_tasks(self, viewer: User) -> ExportFile:
        self._ensure_admin(viewer)
        sheets = [
            self._users_sheet(await self._visible_users(viewer)),
            self._tasks_sheet(await self._visible_tasks(viewer)),
        ]
        return self._finish(viewer, "users_and_tasks", sheets)


__all__ = ["ExportFile", "ExportService"]
