"""User-facing Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from ..models import UserRole

AssignableRole = Literal["member", "admin"]

USER_PUBLIC_EXAMPLE = {
    "id": 7,
    "name": "Ada Lovelace",
    "email": "ada@example.com",
    "role": UserRole.MEMBER.value,
    "profile_image_url": None,
    "created_by_id": 1,
    "created_at": "2024-03-01T09:00:00Z",
    "updated_at": "2024-03-01T09:00:00Z",
}


class UserPublic(BaseModel):
    """Public representation of a user; never carries the password hash."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={"example": USER_PUBLIC_EXAMPLE},
    )

    id: int
    name: str
    email: str
    role: UserRole
    profile_image_url: str | None = None
    created_by_id: int | None = None
    created_at: datetime
    updated_at: datetime


class UserSummary(BaseModel):
    """Compact user reference embedded in task payloads."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    profile_image_url: str | None = None


class UserWithTaskCounts(UserPublic):
    """A user together with counters of the tasks assigned to them."""

    pending_tasks: int = Field(default=0, ge=0)
    in_progress_tasks: int = Field(default=0, ge=0)
    completed_tasks: int = Field(default=0, ge=0)


class _UserChanges(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=6)
    role: AssignableRole | None = None
    admin_key: str | None = None
    profile_image_url: str | None = Field(default=None, max_length=2048)
    remove_profile_image: bool | None = None

    @model_validator(mode="after")
    def _ensure_payload_not_empty(self):
        if not self.model_dump(exclude_unset=True, exclude_none=True):
            raise ValueError("At least one field must be provided for update.")
        return self


class ProfileUpdate(_UserChanges):
    """Changes a user applies to their own account."""


class AdminUserUpdate(_UserChanges):
    """Changes an administrator applies to another account."""


__all__ = [
    "AdminUserUpdate",
    "AssignableRole",
    "ProfileUpdate",
    "UserPublic",
    "UserSummary",
    "UserWithTaskCounts",
]
