"""Reconcile uploaded spreadsheets with stored users and tasks.

Rows are processed one at a time and each accepted row is committed on its
own. A rejected row is rolled back and reported; it never undoes rows that
were already accepted.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence
from zipfile import BadZipFile

from fastapi import UploadFile
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession
from starlette.concurrency import run_in_threadpool

from ..core.config import Settings
from ..core.security import get_password_hash
from ..errors import PermissionDeniedError, ValidationError
from ..interchange import (
    TASKS_SHEET,
    USERS_SHEET,
    RowError,
    TaskRowData,
    UserRowData,
    parse_task_row,
    parse_user_row,
    read_sheet,
)
from ..interchange.parser import TASK_SCOPE, USER_SCOPE, UserRef
from ..models import Task, User, UserRole
from ..repositories import TaskRepository, UserRepository
from .status_sync import sync_task_status

logger = logging.getLogger(__name__)

SheetRows = Sequence[tuple[int, Mapping[str, Any]]]


@dataclass(slots=True)
class ImportReport:
    """Counters and row errors collected during one import."""

    users_created: int = 0
    users_updated: int = 0
    tasks_created: int = 0
    tasks_updated: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> dict[str, int]:
        return {
            "users_created": self.users_created,
            "users_updated": self.users_updated,
            "tasks_created": self.tasks_created,
            "tasks_updated": self.tasks_updated,
        }


@asynccontextmanager
async def staged_upload(upload: UploadFile, directory: Path) -> AsyncIterator[Path]:
    """Copy ``upload`` to a temporary file and remove it afterwards."""

    directory.mkdir(parents=True, exist_ok=True)
    suffix = Path(upload.filename or "").suffix or ".xlsx"
    handle, name = tempfile.mkstemp(prefix="import-", suffix=suffix, dir=directory)
    path = Path(name)
    try:
        with os.fdopen(handle, "wb") as target:
            await upload.seek(0)
            await run_in_threadpool(shutil.copyfileobj, upload.file, target)
        yield path
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove temporary upload", extra={"path": str(path)}, exc_info=True)


class ImportService:
    """Apply spreadsheet rows to the user and task tables."""

    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._users = UserRepository(session)
        self._tasks = TaskRepository(session)

    @staticmethod
    def _ensure_can_import(caller: User) -> None:
        if not UserRole(caller.role).is_admin:
            raise PermissionDeniedError("Access denied.")

    @staticmethod
    async def _read_sheet(path: str | os.PathLike[str], sheet_name: str) -> list[tuple[int, dict[str, Any]]]:
        try:
            return await run_in_threadpool(read_sheet, path, sheet_name)
        except (BadZipFile, InvalidFileException, KeyError, OSError) as exc:
            logger.warning("Rejected unreadable workbook", extra={"sheet": sheet_name, "error": type(exc).__name__})
            raise ValidationError("Uploaded file is not a valid xlsx workbook.") from exc

    async def import_users(self, path: str | os.PathLike[str], caller: User) -> ImportReport:
        """Create or update users from the ``Users`` sheet at ``path``."""
        self._ensure_can_import(caller)
        user_rows = await self._read_sheet(path, USERS_SHEET)
        report = ImportReport()
        await self.apply_user_rows(user_rows, caller, report)
        self._log_summary("users", report)
        return report

    async def import_users_and_tasks(self, path: str | os.PathLike[str], caller: User) -> ImportReport:
        """Import the ``Users`` sheet, then the ``Tasks`` sheet against the result."""
        self._ensure_can_import(caller)
        user_rows = await self._read_sheet(path, USERS_SHEET)
        task_rows = await self._read_sheet(path, TASKS_SHEET)
        report = ImportReport()
        await self.apply_user_rows(user_rows, caller, report)
        await self.apply_task_rows(task_rows, report)
        self._log_summary("users_and_tasks", report)
        return report

    def _log_summary(self, kind: str, report: ImportReport) -> None:
        logger.info(
            "Import finished: %s users created, %s updated; %s tasks created, %s updated; %s errors",
            report.users_created,
            report.users_updated,
            report.tasks_created,
            report.tasks_updated,
            len(report.errors),
            extra={"import_kind": kind, **report.summary(), "error_count": len(report.errors)},
        )

    def _record_error(self, report: ImportReport, message: str) -> None:
        logger.warning("Import row rejected: %s", message)
        report.errors.append(message)

    async def apply_user_rows(self, rows: SheetRows, caller: User, report: ImportReport) -> None:
        caller_id, caller_role = caller.id, UserRole(caller.role)
        for row_number, row in rows:
            try:
                data = parse_user_row(
                    row,
                    row_number,
                    caller_role=caller_role,
                    admin_invite_token=self._settings.admin_invite_token,
                )
                created = await self._upsert_user(data, caller_id=caller_id, caller_role=caller_role)
                await self._session.commit()
            except RowError as exc:
                await self._session.rollback()
                self._record_error(report, exc.message)
                continue
            except (SQLAlchemyError, ValueError, TypeError) as exc:
                await self._session.rollback()
                reason = str(exc) if not isinstance(exc, SQLAlchemyError) else exc.__class__.__name__
                self._record_error(report, f"[{USER_SCOPE} Import] row {row_number}: Error saving user - {reason}")
                continue
            if created:
                report.users_created += 1
            else:
                report.users_updated += 1

    async def _find_user(self, data: UserRowData) -> User | None:
        user = None
        if data.user_id is not None:
            user = await self._users.get(data.user_id)
        if user is None:
            user = await self._users.get_by_email(data.email)
        return user

    async def _upsert_user(self, data: UserRowData, *, caller_id: int | None, caller_role: UserRole) -> bool:
        """Apply one user row; returns ``True`` when a new account was created."""
        user = await self._find_user(data)
        if user is None:
            password = data.password or self._settings.import_default_password
            self._session.add(
                User(
                    name=data.name,
                    email=data.email,
                    role=data.role,
                    profile_image_url=data.profile_image_url,
                    hashed_password=get_password_hash(password),
                    created_by_id=caller_id,
                )
            )
            await self._session.flush()
            return True

        existing_role = UserRole(user.role)
        if existing_role.is_super_admin:
            raise RowError(USER_SCOPE, data.row_number, "The super admin account cannot be modified by import")
        if existing_role is UserRole.ADMIN and not caller_role.is_super_admin:
            raise RowError(USER_SCOPE, data.row_number, "Only superadmin can modify admin users")

        user.name = data.name
        user.email = data.email
        user.role = data.role
        user.profile_image_url = data.profile_image_url
        # An exported sheet carries the stored hash; that is not a new password.
        if data.password and data.password != user.hashed_password:
            user.hashed_password = get_password_hash(data.password)
        self._session.add(user)
        await self._session.flush()
        return False

    async def apply_task_rows(self, rows: SheetRows, report: ImportReport) -> None:
        # Rollbacks expire loaded instances, so rows resolve people against a snapshot.
        users = [UserRef(id=user.id, name=user.name, email=user.email) for user in await self._users.list() if user.id is not None]
        for row_number, row in rows:
            try:
                data = parse_task_row(
                    row,
                    row_number,
                    users=users,
                    strict=self._settings.import_strict_segments,
                )
                created = await self._upsert_task(data)
                await self._session.commit()
            except RowError as exc:
                await self._session.rollback()
                self._record_error(report, exc.message)
                continue
            except (SQLAlchemyError, ValueError, TypeError) as exc:
                await self._session.rollback()
                reason = str(exc) if not isinstance(exc, SQLAlchemyError) else exc.__class__.__name__
                self._record_error(report, f"[{TASK_SCOPE} Import] row {row_number}: Error saving task - {reason}")
                continue
            if created:
                report.tasks_created += 1
            else:
                report.tasks_updated += 1

    async def _upsert_task(self, data: TaskRowData) -> bool:
        """Apply one task row; returns ``True`` when a new task was created."""
        task = await self._tasks.find_by_title_and_creator(data.title, data.created_by_id)
        created = task is None
        if task is None:
            task = Task(title=data.title, created_by_id=data.created_by_id)

        assignees = {user.id: user for user in await self._users.list_by_ids(data.assignee_ids)}
        task.title = data.title
        task.description = data.description
        task.priority = data.priority
        task.status = data.status
        task.due_date = data.due_date
        task.progress = data.progress
        task.created_by_id = data.created_by_id
        task.assigned_to = [assignees[user_id] for user_id in data.assignee_ids if user_id in assignees]
        task.attachments = list(data.attachments)
        task.todo_checklist = list(data.todo_checklist)
        sync_task_status(task)
        self._session.add(task)
        await self._session.flush()
        return created


__all__ = ["ImportReport", "ImportService", "staged_upload"]
