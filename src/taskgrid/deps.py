"""Reusable FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from .core.config import Settings, get_settings
from .core.context import bind_actor_id
from .db.session import get_session
from .errors import AuthenticationError, PermissionDeniedError
from .models import User, UserRole
from .services import AuthService

SettingsDependency = Annotated[Settings, Depends(get_settings)]

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields a database session."""

    async for session in get_session():
        yield session


DatabaseSessionDependency = Annotated[AsyncSession, Depends(get_db_session)]


def _extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
    settings: Settings,
) -> str | None:
    if credentials is not None and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name) or None


async def get_current_user(
    request: Request,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> User:
    """Resolve the caller from a ``Bearer`` header or the auth cookie."""

    token = _extract_token(request, credentials, settings)
    if token is None:
        raise AuthenticationError("Not authorized, no token.")
    user = await AuthService(session, settings).resolve_user(token)
    bind_actor_id(user.id)
    return user


CurrentUserDependency = Annotated[User, Depends(get_current_user)]


async def get_admin_user(current_user: CurrentUserDependency) -> User:
    if not UserRole(current_user.role).is_admin:
        raise PermissionDeniedError("Access denied, admin only.")
    return current_user


async def get_super_admin_user(current_user: CurrentUserDependency) -> User:
    if not UserRole(current_user.role).is_super_admin:
        raise PermissionDeniedError("Access denied, super admin only.")
    return current_user


AdminUserDependency = Annotated[User, Depends(get_admin_user)]
SuperAdminUserDependency = Annotated[User, Depends(get_super_admin_user)]


__all__ = [
    "AdminUserDependency",
    "CurrentUserDependency",
    "DatabaseSessionDependency",
    "SettingsDependency",
    "SuperAdminUserDependency",
    "get_admin_user",
    "get_current_user",
    "get_db_session",
    "get_super_admin_user",
]
