"""Service layer orchestrating user-related repository operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings
from ..core.security import get_password_hash
from ..errors import NotFoundError, PermissionDeniedError, ValidationError
from ..models import TaskStatus, User, UserRole
from ..repositories import UserRepository
from ..repositories.scopes import user_visibility
from ..schemas.user import AdminUserUpdate, ProfileUpdate

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UserTaskCounts:
    """A user together with the number of assigned tasks per status."""

    user: User
    pending: int = 0
    in_progress: int = 0
    completed: int = 0


class UserService:
    """High-level business operations for ``User`` entities."""

    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._repository = UserRepository(session)

    @property
    def repository(self) -> UserRepository:
        return self._repository

    async def create_user(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.MEMBER,
        profile_image_url: str | None = None,
        created_by_id: int | None = None,
    ) -> User:
        """Create and persist a new user record."""
        email = email.strip().lower()
        if await self._repository.get_by_email(email) is not None:
            raise ValidationError("User already exists.")
        user = User(
            name=name.strip(),
            email=email,
            role=UserRole(role),
            profile_image_url=profile_image_url,
            created_by_id=created_by_id,
            hashed_password=get_password_hash(password),
        )
        await self._repository.add(user)
        await self._session.commit()
        logger.info("User created", extra={"user_id": user.id, "role": user.role.value})
        return user

    async def get_user(self, user_id: int) -> User:
        """Fetch a user by primary key or raise ``NotFoundError``."""
        user = await self._repository.get(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    async def get_user_by_email(self, email: str) -> User | None:
        return await self._repository.get_by_email(email)

    async def list_users_with_counts(self, viewer: User, *, search: str | None = None) -> list[UserTaskCounts]:
        """Return the users ``viewer`` may see with their task counters."""
        if not UserRole(viewer.role).is_admin:
            raise PermissionDeniedError("Access denied, admin only.")
        users = await self._repository.list_visible(user_visibility(viewer), search=search)
        counts = await self._repository.task_counts([user.id for user in users if user.id is not None])
        return [
            UserTaskCounts(
                user=user,
                pending=counts[user.id][TaskStatus.PENDING],
                in_progress=counts[user.id][TaskStatus.IN_PROGRESS],
                completed=counts[user.id][TaskStatus.COMPLETED],
            )
            for user in users
        ]

    async def _apply_common_changes(self, user: User, changes: ProfileUpdate | AdminUserUpdate) -> None:
        if changes.name is not None:
            user.name = changes.name.strip()
        if changes.email is not None:
            email = str(changes.email).strip().lower()
            existing = await self._repository.get_by_email(email)
            if existing is not None and existing.id != user.id:
                raise ValidationError("Email is already in use.")
            user.email = email
        if changes.password is not None:
            user.hashed_password = get_password_hash(changes.password)
        if changes.profile_image_url is not None:
            user.profile_image_url = changes.profile_image_url or None
        elif changes.remove_profile_image:
            user.profile_image_url = None

    def _admin_key_matches(self, admin_key: str | None) -> bool:
        expected = self._settings.admin_invite_token
        return bool(expected) and bool(admin_key) and admin_key == expected

    async def update_profile(self, user: User, changes: ProfileUpdate) -> User:
        """Apply a self-service profile update."""
        if changes.role is not None:
            requested = UserRole(changes.role)
            if UserRole(user.role).is_super_admin:
                raise PermissionDeniedError("The super admin role cannot be changed.")
            if requested is UserRole.ADMIN:
                if not (changes.admin_key or "").strip():
                    raise ValidationError("Admin key required for admin role.")
                if not self._admin_key_matches(changes.admin_key):
                    raise PermissionDeniedError("Invalid admin key.")
            user.role = requested
        await self._apply_common_changes(user, changes)
        await self._session.commit()
        return user

    async def update_user(self, actor: User, user_id: int, changes: AdminUserUpdate) -> User:
        """Apply an administrator's update to another account."""
        target = await self.get_user(user_id)
        actor_role = UserRole(actor.role)
        if not actor_role.can_manage(UserRole(target.role)):
            raise PermissionDeniedError("You are not permitted to modify this user.")
        if changes.role is not None:
            requested = UserRole(changes.role)
            if requested is UserRole.ADMIN:
                if not actor_role.is_super_admin:
                    raise PermissionDeniedError("Only superadmin can assign the admin role.")
                if not self._admin_key_matches(changes.admin_key):
                    raise PermissionDeniedError("Invalid admin key.")
            target.role = requested
        await self._apply_common_changes(target, changes)
        await self._session.commit()
        logger.info("User updated", extra={"user_id": target.id})
        return target

    async def delete_user(self, actor: User, user_id: int) -> None:
        """Delete ``user_id`` when ``actor`` outranks it."""
        target = await self.get_user(user_id)
        if target.id == actor.id:
            raise PermissionDeniedError("You cannot delete your own account.")
        if not UserRole(actor.role).can_manage(UserRole(target.role)):
            raise PermissionDeniedError("You are not permitted to delete this user.")
        await self._repository.unassign_from_all_tasks(user_id)
        await self._repository.clear_created_by(user_id)
        await self._repository.delete(target)
        await self._session.commit()
        logger.info("User deleted", extra={"user_id": user_id})


__all__ = ["UserService", "UserTaskCounts"]
