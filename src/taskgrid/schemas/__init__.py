"""Pydantic schemas for public interfaces."""

from __future__ import annotations

from .auth import LoginRequest, LoginResponse, RegisterRequest, TokenPayload
from .report import ImportResponse
from .system import ErrorResponse, HealthCheckResponse, MessageResponse, RootResponse
from .task import (
    Attachment,
    ChecklistAppend,
    ChecklistItem,
    ChecklistUpdate,
    DashboardResponse,
    RecentTask,
    StatusSummary,
    TaskCreate,
    TaskListResponse,
    TaskRead,
    TaskUpdate,
)
from .user import AdminUserUpdate, ProfileUpdate, UserPublic, UserSummary, UserWithTaskCounts

__all__ = [
    "AdminUserUpdate",
    "Attachment",
    "ChecklistAppend",
    "ChecklistItem",
    "ChecklistUpdate",
    "DashboardResponse",
    "ErrorResponse",
    "HealthCheckResponse",
    "ImportResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "ProfileUpdate",
    "RecentTask",
    "RegisterRequest",
    "RootResponse",
    "StatusSummary",
    "TaskCreate",
    "TaskListResponse",
    "TaskRead",
    "TaskUpdate",
    "TokenPayload",
    "UserPublic",
    "UserSummary",
    "UserWithTaskCounts",
]
