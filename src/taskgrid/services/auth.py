"""Authentication service encapsulating registration, login and token checks."""

from __future__ import annotations

import logging

from pydantic import ValidationError as PydanticValidationError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings
from ..core.security import GeneratedToken, JWTError, create_access_token, decode_token, verify_password
from ..errors import AuthenticationError
from ..models import User, UserRole
from ..schemas.auth import RegisterRequest, TokenPayload
from .users import UserService

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, credential checks and access-token handling."""

    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._user_service = UserService(session, settings)

    async def register_user(self, payload: RegisterRequest) -> User:
        """Create a member account, or an admin one when the invite secret matches."""
        role = UserRole.MEMBER
        invite_token = self._settings.admin_invite_token
        if payload.role == UserRole.ADMIN.value and invite_token and payload.admin_key == invite_token:
            role = UserRole.ADMIN
        return await self._user_service.create_user(
            name=payload.name,
            email=str(payload.email),
            password=payload.password,
            role=role,
            profile_image_url=payload.profile_image_url,
        )

    async def authenticate_user(self, email: str, password: str) -> User:
        user = await self._user_service.get_user_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.info("Login rejected", extra={"email": email})
            raise AuthenticationError("Invalid email or password.")
        return user

    def issue_token(self, user: User) -> GeneratedToken:
        if user.id is None:
            raise AuthenticationError("User must be persisted before issuing tokens.")
        return create_access_token(
            subject=user.id,
            role=UserRole(user.role).value,
            settings=self._settings,
        )

    async def resolve_user(self, token: str) -> User:
        """Return the user an access token was issued to."""
        try:
            payload = TokenPayload.model_validate(
                decode_token(
                    token=token,
                    secret=self._settings.jwt_secret_key,
                    algorithm=self._settings.jwt_algorithm,
                )
            )
            user_id = int(payload.sub)
        except (JWTError, PydanticValidationError, ValueError) as exc:
            raise AuthenticationError("Not authorized, token failed.") from exc

        user = await self._user_service.repository.get(user_id)
        if user is None:
            raise AuthenticationError("Not authorized, user not found.")
        return user


__all__ = ["AuthService"]
