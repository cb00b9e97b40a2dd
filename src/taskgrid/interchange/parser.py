"""Turn spreadsheet rows back into validated user and task data.

Each ``parse_*_row`` function either returns a plain data object or raises
:class:`RowError` carrying the message reported back to the importer. Lookups
happen against already loaded records; nothing here touches the database.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Mapping, Protocol, Sequence

from ..models import TaskPriority, TaskStatus, UserRole
from .columns import DONE_MARK

USER_SCOPE = "User"
TASK_SCOPE = "Task"

_ATTACHMENT_PATTERN = re.compile(r"^(.+?)\s*\((https?://[^\s)]+)\)$")
_TODO_PATTERN = re.compile(r"^(.+?) \[(✔|✘)\]$")
_DAY_FIRST_PATTERN = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4}|\d{2})$")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
# Spreadsheet serial of 1970-01-01 (25567 days plus the 1900 leap-year quirk).
_SERIAL_EPOCH_OFFSET = 25567 + 2

_PRIORITY_ALIASES: dict[str, TaskPriority] = {
    "low": TaskPriority.LOW,
    "medium": TaskPriority.MEDIUM,
    "normal": TaskPriority.MEDIUM,
    "high": TaskPriority.HIGH,
}

_STATUS_ALIASES: dict[str, TaskStatus] = {
    "pending": TaskStatus.PENDING,
    "in-progress": TaskStatus.IN_PROGRESS,
    "in progress": TaskStatus.IN_PROGRESS,
    "in_progress": TaskStatus.IN_PROGRESS,
    "completed": TaskStatus.COMPLETED,
}


class UserLike(Protocol):
    id: int | None
    name: str
    email: str


@dataclass(frozen=True, slots=True)
class UserRef:
    """Detached snapshot of the fields used to resolve people named in a row."""

    id: int
    name: str
    email: str


class RowError(Exception):
    """A spreadsheet row that cannot be imported."""

    def __init__(self, scope: str, row_number: int, reason: str) -> None:
        self.scope = scope
        self.row_number = row_number
        self.reason = reason
        super().__init__(f"[{scope} Import] row {row_number}: {reason}")

    @property
    def message(self) -> str:
        return str(self)


@dataclass(slots=True)
class UserRowData:
    row_number: int
    name: str
    email: str
    role: UserRole
    user_id: int | None = None
    password: str | None = None
    profile_image_url: str | None = None


@dataclass(slots=True)
class TaskRowData:
    row_number: int
    title: str
    created_by_id: int
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_date: datetime | None = None
    progress: int = 0
    assignee_ids: list[int] = field(default_factory=list)
    attachments: list[dict[str, Any]] = field(default_factory=list)
    todo_checklist: list[dict[str, Any]] = field(default_factory=list)


def cell_text(value: Any) -> str:
    """Render a cell value as trimmed text; integral floats lose their ``.0``."""

    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_identifier(value: Any) -> int | None:
    """Return ``value`` as a user id when it is a well-formed positive integer."""

    if isinstance(value, bool):
        return None
    text = cell_text(value)
    if not text.isdigit():
        return None
    identifier = int(text)
    return identifier if identifier > 0 else None


def parse_spreadsheet_date(value: Any) -> datetime | None:
    """Decode the date representations found in spreadsheet cells.

    Accepts native dates, spreadsheet serial numbers, ``d/m/y`` strings
    (separators ``/``, ``-`` or ``.``; two-digit years mean 20xx) and ISO
    strings. Anything else yields ``None``. Results are timezone-aware UTC.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return _EPOCH + timedelta(milliseconds=(value - _SERIAL_EPOCH_OFFSET) * 86400 * 1000)
        except (OverflowError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    match = _DAY_FIRST_PATTERN.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000
        # Out-of-range days and months roll over: 31/02/2021 is 3 March.
        year += (month - 1) // 12
        month = (month - 1) % 12 + 1
        try:
            return datetime(year, month, 1, tzinfo=timezone.utc) + timedelta(days=day - 1)
        except (OverflowError, ValueError):
            return None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc) if parsed.tzinfo is None else parsed.astimezone(timezone.utc)


def parse_attachments(raw: Any, *, strict: bool = False) -> list[dict[str, str]]:
    """Parse ``name (url)`` segments separated by commas.

    Segments that do not match are dropped, or raise ``ValueError`` when
    ``strict`` is set.
    """

    attachments: list[dict[str, str]] = []
    for segment in cell_text(raw).split(","):
        segment = segment.strip()
        if not segment:
            continue
        match = _ATTACHMENT_PATTERN.match(segment)
        if match is None:
            if strict:
                raise ValueError(f'Invalid attachment "{segment}"')
            continue
        attachments.append({"name": match.group(1).strip(), "url": match.group(2).strip()})
    return attachments


def parse_todos(raw: Any, *, strict: bool = False) -> list[dict[str, Any]]:
    """Parse ``text [✔]`` / ``text [✘]`` segments separated by ``" | "``."""

    todos: list[dict[str, Any]] = []
    for segment in cell_text(raw).split(" | "):
        segment = segment.strip()
        if not segment:
            continue
        match = _TODO_PATTERN.match(segment)
        text = match.group(1).strip() if match else ""
        if not text:
            if strict:
                raise ValueError(f'Invalid todo "{segment}"')
            continue
        todos.append({"text": text, "completed": match.group(2) == DONE_MARK, "due_date": None})
    return todos


def find_user_by_email_or_name(users: Sequence[UserLike], identifier: Any) -> UserLike | None:
    """First user whose email or name equals ``identifier`` ignoring case."""

    needle = cell_text(identifier).lower()
    if not needle:
        return None
    for user in users:
        if (user.email or "").lower() == needle or (user.name or "").lower() == needle:
            return user
    return None


def parse_user_row(
    row: Mapping[str, Any],
    row_number: int,
    *,
    caller_role: UserRole,
    admin_invite_token: str,
) -> UserRowData:
    name = cell_text(row.get("Name"))
    email = cell_text(row.get("Email")).lower()
    role_text = cell_text(row.get("Role")).lower()

    if not name or not email or not role_text:
        raise RowError(USER_SCOPE, row_number, "Missing required fields")
    if role_text not in (UserRole.ADMIN.value, UserRole.MEMBER.value):
        raise RowError(USER_SCOPE, row_number, f'Invalid role "{role_text}"')

    role = UserRole(role_text)
    if role is UserRole.ADMIN:
        if caller_role is not UserRole.SUPER_ADMIN:
            raise RowError(USER_SCOPE, row_number, "Only superadmin can create admin users")
        if cell_text(row.get("Admin Key")) != admin_invite_token:
            raise RowError(USER_SCOPE, row_number, "Invalid Admin Key")

    return UserRowData(
        row_number=row_number,
        name=name,
        email=email,
        role=role,
        user_id=parse_identifier(row.get("ID")),
        password=cell_text(row.get("Password")) or None,
        profile_image_url=cell_text(row.get("ProfileImage")) or None,
    )


def _parse_choice(value: Any, default: str, aliases: Mapping[str, Any], label: str, row_number: int) -> Any:
    text = cell_text(value) or default
    try:
        return aliases[text.lower()]
    except KeyError:
        raise RowError(TASK_SCOPE, row_number, f'Invalid {label} "{text}"') from None


def _parse_progress(value: Any, row_number: int) -> int:
    text = cell_text(value).replace("%", "").strip()
    if not text:
        return 0
    try:
        progress = float(text)
    except ValueError:
        progress = float("nan")
    if not 0 <= progress <= 100:
        raise RowError(TASK_SCOPE, row_number, f'Invalid progress value "{cell_text(value)}"')
    return int(progress + 0.5)


def parse_task_row(
    row: Mapping[str, Any],
    row_number: int,
    *,
    users: Sequence[UserLike],
    strict: bool = False,
) -> TaskRowData:
    title = cell_text(row.get("Title"))
    if not title:
        raise RowError(TASK_SCOPE, row_number, "Title is required")

    priority = _parse_choice(row.get("Priority"), "Normal", _PRIORITY_ALIASES, "priority", row_number)
    status = _parse_choice(row.get("Status"), "Pending", _STATUS_ALIASES, "status", row_number)
    progress = _parse_progress(row.get("Progress"), row_number)

    assignee_ids: list[int] = []
    for identifier in cell_text(row.get("AssignedTo")).split(","):
        user = find_user_by_email_or_name(users, identifier)
        if user is not None and user.id is not None and user.id not in assignee_ids:
            assignee_ids.append(user.id)

    created_by = find_user_by_email_or_name(users, row.get("CreatedBy"))
    if created_by is None or created_by.id is None:
        raise RowError(TASK_SCOPE, row_number, f'CreatedBy user "{cell_text(row.get("CreatedBy"))}" not found')

    try:
        attachments = parse_attachments(row.get("Attachments"), strict=strict)
        todos = parse_todos(row.get("Todos"), strict=strict)
    except ValueError as exc:
        raise RowError(TASK_SCOPE, row_number, str(exc)) from exc

    return TaskRowData(
        row_number=row_number,
        title=title,
        created_by_id=created_by.id,
        description=cell_text(row.get("Description")),
        priority=priority,
        status=status,
        due_date=parse_spreadsheet_date(row.get("DueDate")),
        progress=progress,
        assignee_ids=assignee_ids,
        attachments=attachments,
        todo_checklist=todos,
    )


__all__ = [
    "RowError",
    "TaskRowData",
    "UserLike",
    "UserRef",
    "UserRowData",
    "cell_text",
    "find_user_by_email_or_name",
    "parse_attachments",
    "parse_identifier",
    "parse_spreadsheet_date",
    "parse_task_row",
    "parse_todos",
    "parse_user_row",
]
