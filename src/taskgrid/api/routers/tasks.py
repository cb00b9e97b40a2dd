"""Routes handling task CRUD, checklists and the dashboard."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from ...deps import CurrentUserDependency, DatabaseSessionDependency, SuperAdminUserDependency
from ...models import Task, TaskStatus
from ...schemas import (
    ChecklistAppend,
    ChecklistUpdate,
    DashboardResponse,
    MessageResponse,
    RecentTask,
    StatusSummary,
    TaskCreate,
    TaskListResponse,
    TaskRead,
    TaskUpdate,
)
from ...services import TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])

TaskIdPath = Annotated[int, Path(ge=1, description="Identifier of the task.")]
StatusQuery = Annotated[
    TaskStatus | None,
    Query(description="Filter results to tasks matching the supplied status."),
]
SearchQuery = Annotated[
    str | None,
    Query(max_length=255, description="Case-insensitive substring of the task title."),
]


def _map_task(task: Task) -> TaskRead:
    return TaskRead.model_validate(task)


@router.get("/", response_model=TaskListResponse, summary="List visible tasks")
async def list_tasks(
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
    status: StatusQuery = None,
    search: SearchQuery = None,
) -> TaskListResponse:
    tasks, counts = await TaskService(session).list_tasks(current_user, status=status, search=search)
    return TaskListResponse(
        tasks=[_map_task(task) for task in tasks],
        status_summary=StatusSummary(
            total_tasks=counts.total,
            pending_tasks=counts.pending,
            in_progress_tasks=counts.in_progress,
            completed_tasks=counts.completed,
            percentages=counts.percentages(),
        ),
    )


@router.get(
    "/dashboard-data",
    response_model=DashboardResponse,
    summary="Aggregates for the caller's dashboard",
)
async def get_dashboard_data(
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> DashboardResponse:
    data = await TaskService(session).dashboard(current_user)
    return DashboardResponse(
        status_summary={key.value: count for key, count in data.by_status.items()},
        priority_summary={key.value: count for key, count in data.by_priority.items()},
        recent_tasks=[RecentTask.model_validate(task) for task in data.recent],
        overdue_tasks=data.overdue,
    )


@router.get("/{task_id}", response_model=TaskRead, summary="Retrieve a task by id")
async def get_task(
    task_id: TaskIdPath,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> TaskRead:
    return _map_task(await TaskService(session).get_task_for_viewer(current_user, task_id))


@router.post(
    "/",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new task",
)
async def create_task(
    payload: TaskCreate,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> TaskRead:
    return _map_task(await TaskService(session).create_task(current_user, payload))


@router.put("/{task_id}", response_model=TaskRead, summary="Update an existing task")
async def update_task(
    task_id: TaskIdPath,
    payload: TaskUpdate,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> TaskRead:
    return _map_task(await TaskService(session).update_task(current_user, task_id, payload))


@router.put("/{task_id}/todo", response_model=TaskRead, summary="Replace the task checklist")
async def update_task_checklist(
    task_id: TaskIdPath,
    payload: ChecklistUpdate,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> TaskRead:
    task = await TaskService(session).replace_checklist(current_user, task_id, payload.todo_checklist)
    return _map_task(task)


@router.post("/{task_id}/checklist", response_model=TaskRead, summary="Append checklist items")
async def append_task_checklist(
    task_id: TaskIdPath,
    payload: ChecklistAppend,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> TaskRead:
    task = await TaskService(session).append_checklist(current_user, task_id, payload.checklist)
    return _map_task(task)


@router.delete("/{task_id}", response_model=MessageResponse, summary="Delete a task")
async def delete_task(
    task_id: TaskIdPath,
    session: DatabaseSessionDependency,
    super_admin: SuperAdminUserDependency,
) -> MessageResponse:
    await TaskService(session).delete_task(super_admin, task_id)
    return MessageResponse(message="Task deleted successfully.")
