"""Task-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models import TaskPriority, TaskStatus
from .user import UserSummary

TASK_READ_EXAMPLE = {
    "id": 1,
    "title": "Prepare quarterly report",
    "description": "Collect the numbers from every team.",
    "priority": TaskPriority.HIGH.value,
    "status": TaskStatus.IN_PROGRESS.value,
    "due_date": "2024-04-01T00:00:00Z",
    "progress": 50,
    "created_by_id": 1,
    "created_by": {"id": 1, "name": "Grace", "email": "grace@example.com"},
    "assigned_to": [{"id": 7, "name": "Ada Lovelace", "email": "ada@example.com"}],
    "todo_checklist": [
        {"text": "Gather data", "completed": True, "due_date": None},
        {"text": "Write summary", "completed": False, "due_date": None},
    ],
    "attachments": [{"name": "Template", "url": "https://example.com/template.xlsx"}],
    "completed_todo_count": 1,
    "created_at": "2024-03-01T09:00:00Z",
    "updated_at": "2024-03-02T10:00:00Z",
}


class ChecklistItem(BaseModel):
    text: str = Field(min_length=1)
    completed: bool = False
    due_date: datetime | None = None

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Checklist text must not be blank.")
        return value


class Attachment(BaseModel):
    """A named link attached to a task; both parts are required."""

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)

    @field_validator("name", "url")
    @classmethod
    def _strip_value(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Each attachment must have a name and url.")
        return value


class TaskCreate(BaseModel):
    """Payload for creating a new task."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Prepare quarterly report",
                "description": "Collect the numbers from every team.",
                "priority": TaskPriority.HIGH.value,
                "due_date": "2024-04-01T00:00:00Z",
                "assigned_to": [7],
                "todo_checklist": [{"text": "Gather data"}],
            }
        }
    )

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    priority: TaskPriority
    due_date: datetime
    assigned_to: list[int] = Field(min_length=1)
    attachments: list[Attachment] = Field(default_factory=list)
    todo_checklist: list[ChecklistItem] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Partial task update.

    Administrators may send any field; assigned members are limited to
    ``todo_checklist`` and every other field they send is ignored.
    """

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    assigned_to: list[int] | None = Field(default=None, min_length=1)
    attachments: list[Attachment] | None = None
    todo_checklist: list[ChecklistItem] | None = None

    @model_validator(mode="after")
    def _ensure_payload_not_empty(self) -> "TaskUpdate":
        if not self.model_dump(exclude_unset=True, exclude_none=True):
            raise ValueError("At least one field must be provided for update.")
        return self


class ChecklistUpdate(BaseModel):
    """Replaces the checklist wholesale."""

    todo_checklist: list[ChecklistItem]


class ChecklistAppend(BaseModel):
    """Items appended to the end of the checklist."""

    checklist: list[ChecklistItem]


class TaskRead(BaseModel):
    """Public representation of a task."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={"example": TASK_READ_EXAMPLE},
    )

    id: int
    title: str
    description: str
    priority: TaskPriority
    status: TaskStatus
    due_date: datetime | None = None
    progress: int
    created_by_id: int | None = None
    created_by: UserSummary | None = None
    assigned_to: list[UserSummary] = Field(default_factory=list)
    todo_checklist: list[ChecklistItem] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    completed_todo_count: int = 0
    created_at: datetime
    updated_at: datetime


class StatusSummary(BaseModel):
    """Task counts per status over a visibility scope."""

    total_tasks: int = Field(default=0, ge=0)
    pending_tasks: int = Field(default=0, ge=0)
    in_progress_tasks: int = Field(default=0, ge=0)
    completed_tasks: int = Field(default=0, ge=0)
    percentages: dict[str, int] = Field(default_factory=dict)


class TaskListResponse(BaseModel):
    tasks: list[TaskRead]
    status_summary: StatusSummary


class RecentTask(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    status: TaskStatus
    priority: TaskPriority
    created_at: datetime


class DashboardResponse(BaseModel):
    """Aggregates shown on the dashboard for the caller's visible tasks."""

    status_summary: dict[str, int]
    priority_summary: dict[str, int]
    recent_tasks: list[RecentTask]
    overdue_tasks: int = Field(ge=0)


__all__ = [
    "Attachment",
    "ChecklistAppend",
    "ChecklistItem",
    "ChecklistUpdate",
    "DashboardResponse",
    "RecentTask",
    "StatusSummary",
    "TaskCreate",
    "TaskListResponse",
    "TaskRead",
    "TaskUpdate",
]
