"""Domain service layer package."""

from __future__ import annotations

from .auth import AuthService
from .exports import ExportFile, ExportService
from .imports import ImportReport, ImportService, staged_upload
from .status_sync import sync_task_status
from .tasks import TaskService
from .users import UserService

__all__ = [
    "AuthService",
    "ExportFile",
    "ExportService",
    "ImportReport",
    "ImportService",
    "TaskService",
    "UserService",
    "staged_upload",
    "sync_task_status",
]
