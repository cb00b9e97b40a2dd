"""Schemas describing authentication payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .user import AssignableRole, UserPublic


class RegisterRequest(BaseModel):
    """Incoming payload for registering a new account."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6)
    role: AssignableRole | None = None
    admin_key: str | None = None
    profile_image_url: str | None = Field(default=None, max_length=2048)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name must not be blank.")
        return value


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginResponse(BaseModel):
    """Issued access token plus the authenticated user."""

    token: str
    token_type: str = Field(default="bearer", frozen=True)
    expires_in: int
    user: UserPublic


class TokenPayload(BaseModel):
    """Validated JWT payload."""

    model_config = ConfigDict(extra="ignore")

    sub: str
    exp: datetime
    iat: datetime
    jti: str
    role: str


__all__ = ["LoginRequest", "LoginResponse", "RegisterRequest", "TokenPayload"]
