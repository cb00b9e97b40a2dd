"""SQLModel table definitions."""

from .common import TimestampMixin, utcnow
from .task import Task, TaskAssignee, TaskBase, TaskPriority, TaskStatus
from .user import ASSIGNABLE_ROLES, User, UserBase, UserRole

__all__ = [
    "ASSIGNABLE_ROLES",
    "Task",
    "TaskAssignee",
    "TaskBase",
    "TaskPriority",
    "TaskStatus",
    "TimestampMixin",
    "User",
    "UserBase",
    "UserRole",
    "utcnow",
]
