"""Derivation of task status and progress from the checklist."""

from __future__ import annotations

import math
from typing import Any, Iterable, Protocol

from ..models import TaskStatus


class _HasChecklist(Protocol):
    todo_checklist: list[dict[str, Any]]
    progress: int
    status: TaskStatus


def rounded_percentage(part: int, total: int) -> int:
    """Return ``part / total`` as a whole percentage, halves rounding up."""

    if total <= 0:
        return 0
    return int(math.floor(part * 100 / total + 0.5))


def derive_status(checklist: Iterable[dict[str, Any]]) -> tuple[TaskStatus, int]:
    """Return the ``(status, progress)`` pair implied by ``checklist``."""

    items = list(checklist)
    total = len(items)
    completed = sum(1 for item in items if item.get("completed"))
    progress = rounded_percentage(completed, total)
    if total > 0 and completed == total:
        return TaskStatus.COMPLETED, progress
    if completed > 0:
        return TaskStatus.IN_PROGRESS, progress
    return TaskStatus.PENDING, progress


def sync_task_status(task: _HasChecklist) -> _HasChecklist:
    """Overwrite ``task.status`` and ``task.progress`` from its checklist.

    Runs as the last step before every task commit; calling it twice is a
    no-op.
    """

    status, progress = derive_status(task.todo_checklist or [])
    task.status = status
    task.progress = progress
    return task


__all__ = ["derive_status", "rounded_percentage", "sync_task_status"]
