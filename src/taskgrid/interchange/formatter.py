"""Render users and tasks as flat spreadsheet rows.

The functions here only read attributes of already loaded records, so they
can be used on any object exposing the same fields. Empty values are always
rendered as ``""``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from ..models import Task, User, UserRole
from .columns import (
    ATTACHMENT_SEPARATOR,
    DONE_MARK,
    NAME_SEPARATOR,
    OPEN_MARK,
    TODO_SEPARATOR,
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_iso(value: datetime | None) -> str:
    if value is None:
        return ""
    return _as_utc(value).isoformat()


def format_local(value: datetime | None, fmt: str) -> str:
    if value is None:
        return ""
    return _as_utc(value).strftime(fmt)


def format_attachments(attachments: Iterable[Mapping[str, Any]]) -> str:
    """``name (url)`` pairs joined by ``", "``."""
    return ATTACHMENT_SEPARATOR.join(f"{item['name']} ({item['url']})" for item in attachments)


def format_todos(checklist: Iterable[Mapping[str, Any]]) -> str:
    """``text [✔]`` / ``text [✘]`` entries joined by ``" | "``."""
    return TODO_SEPARATOR.join(
        f"{item['text']} [{DONE_MARK if item.get('completed') else OPEN_MARK}]" for item in checklist
    )


def format_user_row(
    user: User,
    *,
    admin_invite_token: str,
    include_sensitive: bool = True,
) -> dict[str, str]:
    role = UserRole(user.role)
    admin_key = admin_invite_token if include_sensitive and role is UserRole.ADMIN else ""
    return {
        "ID": str(user.id) if user.id is not None else "",
        "Name": user.name or "",
        "Email": user.email or "",
        "Password": (user.hashed_password or "") if include_sensitive else "",
        "Role": role.value,
        "ProfileImage": user.profile_image_url or "",
        "Admin Key": admin_key,
        "CreatedAt": format_iso(user.created_at),
        "UpdatedAt": format_iso(user.updated_at),
    }


def format_task_row(
    task: Task,
    *,
    date_format: str = "%d/%m/%Y",
    datetime_format: str = "%d/%m/%Y %H:%M:%S",
) -> dict[str, str]:
    priority = getattr(task.priority, "value", task.priority)
    status = getattr(task.status, "value", task.status)
    return {
        "Title": task.title or "",
        "Description": task.description or "",
        "Priority": priority or "",
        "Status": status or "",
        "DueDate": format_local(task.due_date, date_format),
        "Progress": f"{task.progress or 0}%",
        "AssignedTo": NAME_SEPARATOR.join(user.name for user in task.assigned_to or []),
        "CreatedBy": task.created_by.name if task.created_by is not None else "",
        "Attachments": format_attachments(task.attachments or []),
        "Todos": format_todos(task.todo_checklist or []),
        "CreatedAt": format_local(task.created_at, datetime_format),
        "UpdatedAt": format_local(task.updated_at, datetime_format),
    }


__all__ = [
    "format_attachments",
    "format_iso",
    "format_local",
    "format_task_row",
    "format_todos",
    "format_user_row",
]
