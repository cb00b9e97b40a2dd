"""User administration endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path, Query

from ...deps import AdminUserDependency, CurrentUserDependency, DatabaseSessionDependency, SettingsDependency
from ...schemas import AdminUserUpdate, MessageResponse, UserPublic, UserWithTaskCounts
from ...services import UserService

router = APIRouter(prefix="/users", tags=["users"])

UserIdPath = Annotated[int, Path(ge=1, description="Identifier of the user.")]
SearchQuery = Annotated[
    str | None,
    Query(max_length=255, description="Case-insensitive substring of the user's name."),
]


@router.get(
    "/",
    response_model=list[UserWithTaskCounts],
    summary="List the users visible to the caller with their task counters",
)
async def list_users(
    admin_user: AdminUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
    search: SearchQuery = None,
) -> list[UserWithTaskCounts]:
    rows = await UserService(session, settings).list_users_with_counts(admin_user, search=search)
    return [
        UserWithTaskCounts(
            **UserPublic.model_validate(row.user).model_dump(),
            pending_tasks=row.pending,
            in_progress_tasks=row.in_progress,
            completed_tasks=row.completed,
        )
        for row in rows
    ]


@router.get("/{user_id}", response_model=UserPublic, summary="Retrieve a user by id")
async def get_user(
    user_id: UserIdPath,
    current_user: CurrentUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> UserPublic:
    user = await UserService(session, settings).get_user(user_id)
    return UserPublic.model_validate(user)


@router.put("/{user_id}", response_model=UserPublic, summary="Update another user's account")
async def update_user(
    user_id: UserIdPath,
    payload: AdminUserUpdate,
    admin_user: AdminUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> UserPublic:
    user = await UserService(session, settings).update_user(admin_user, user_id, payload)
    return UserPublic.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse, summary="Delete a user")
async def delete_user(
    user_id: UserIdPath,
    admin_user: AdminUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> MessageResponse:
    await UserService(session, settings).delete_user(admin_user, user_id)
    return MessageResponse(message="User deleted successfully.")
