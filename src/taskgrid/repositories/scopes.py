"""Visibility rules shared by listings, exports and counters.

Every query that returns users or tasks to a caller goes through one of the
filters below, so a listing and the summary shown next to it always agree.
"""

from __future__ import annotations

from typing import Literal

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import select

from ..errors import PermissionDeniedError
from ..models import Task, TaskAssignee, User, UserRole

ExportKind = Literal["users_template", "users", "tasks", "users_task_template", "users_and_tasks"]

_EXPORT_FILENAMES: dict[ExportKind, tuple[str, str]] = {
    # kind: (super-admin filename, admin filename)
    "users": ("users.xlsx", "members.xlsx"),
    "users_and_tasks": ("users-and-tasks.xlsx", "members-and-tasks.xlsx"),
    "users_task_template": ("users-and-empty-tasks.xlsx", "members-and-empty-tasks.xlsx"),
    "tasks": ("tasks.xlsx", "tasks.xlsx"),
    "users_template": ("empty-users-template.xlsx", "empty-users-template.xlsx"),
}


def user_visibility(viewer: User) -> ColumnElement[bool]:
    """Filter on ``users`` selecting the accounts ``viewer`` may see."""

    if viewer.role == UserRole.SUPER_ADMIN:
        return User.role.in_([UserRole.ADMIN, UserRole.MEMBER])  # type: ignore[attr-defined]
    if viewer.role == UserRole.ADMIN:
        return User.role == UserRole.MEMBER  # type: ignore[return-value]
    if viewer.role == UserRole.MEMBER:
        return User.id == viewer.id  # type: ignore[return-value]
    raise PermissionDeniedError()


def task_visibility(viewer: User) -> ColumnElement[bool]:
    """Filter on ``tasks`` selecting the tasks ``viewer`` may see.

    Admins see what they created plus anything assigned to at least one
    member; tasks assigned only to other admins stay hidden.
    """

    if viewer.role == UserRole.SUPER_ADMIN:
        return sa.true()
    if viewer.role == UserRole.ADMIN:
        member_assigned = (
            select(TaskAssignee.task_id)
            .join(User, User.id == TaskAssignee.user_id)  # type: ignore[arg-type]
            .where(User.role == UserRole.MEMBER)
        )
        return sa.or_(
            Task.created_by_id == viewer.id,  # type: ignore[arg-type]
            Task.id.in_(member_assigned),  # type: ignore[union-attr]
        )
    if viewer.role == UserRole.MEMBER:
        own = select(TaskAssignee.task_id).where(TaskAssignee.user_id == viewer.id)
        return Task.id.in_(own)  # type: ignore[union-attr]
    raise PermissionDeniedError()


def export_filename(viewer: User, kind: ExportKind) -> str:
    """Download filename for an export, which names whose rows it contains."""

    super_admin_name, admin_name = _EXPORT_FILENAMES[kind]
    return super_admin_name if viewer.role == UserRole.SUPER_ADMIN else admin_name


__all__ = ["ExportKind", "export_filename", "task_visibility", "user_visibility"]
