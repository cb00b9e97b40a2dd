"""Task domain models built with SQLModel."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

from .common import TimestampMixin
from .user import User


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    """Lifecycle state; always derived from the checklist on save."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskAssignee(SQLModel, table=True):
    """Link table between tasks and the users they are assigned to."""

    __tablename__ = "task_assignees"

    task_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    user_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )


class TaskBase(SQLModel, table=False):
    """Shared attributes for task models."""

    title: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    description: str = Field(
        default="",
        sa_column=sa.Column(sa.Text(), nullable=False, server_default=""),
    )
    priority: TaskPriority = Field(
        default=TaskPriority.MEDIUM,
        sa_column=sa.Column(
            sa.Enum(TaskPriority, name="task_priority", native_enum=False, values_callable=_enum_values),
            nullable=False,
            server_default=TaskPriority.MEDIUM.value,
        ),
    )
    status: TaskStatus = Field(
        default=TaskStatus.PENDING,
        sa_column=sa.Column(
            sa.Enum(TaskStatus, name="task_status", native_enum=False, values_callable=_enum_values),
            nullable=False,
            server_default=TaskStatus.PENDING.value,
        ),
    )
    due_date: Optional[datetime] = Field(
        default=None,
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True),
    )
    progress: int = Field(
        default=0,
        sa_column=sa.Column(sa.Integer(), nullable=False, server_default="0"),
    )


class Task(TaskBase, TimestampMixin, table=True):
    """Persistent task model.

    ``todo_checklist`` and ``attachments`` are ordered lists of plain dicts
    (``{"text", "completed", "due_date"}`` and ``{"name", "url"}``) kept in
    JSON columns and always replaced as a whole.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        sa.CheckConstraint("length(title) > 0", name="ck_tasks_title_length"),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_tasks_progress_range"),
        sa.Index("ix_tasks_created_by_id", "created_by_id"),
        sa.Index("ix_tasks_title_created_by_id", "title", "created_by_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    created_by_id: Optional[int] = Field(
        default=None,
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    todo_checklist: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=sa.Column(sa.JSON(), nullable=False, default=list),
    )
    attachments: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=sa.Column(sa.JSON(), nullable=False, default=list),
    )

    created_by: Optional[User] = Relationship(sa_relationship_kwargs={"lazy": "selectin"})
    assigned_to: list[User] = Relationship(
        link_model=TaskAssignee,
        sa_relationship_kwargs={"lazy": "selectin", "order_by": "User.id"},
    )

    @property
    def completed_todo_count(self) -> int:
        return sum(1 for item in self.todo_checklist if item.get("completed"))


__all__ = ["Task", "TaskAssignee", "TaskBase", "TaskPriority", "TaskStatus"]
