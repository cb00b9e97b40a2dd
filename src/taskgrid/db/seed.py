"""Provision the single super-admin account from settings."""

from __future__ import annotations

import asyncio
import logging

from ..core.config import get_settings
from ..core.logging import configure_logging
from ..core.security import get_password_hash
from ..models import User, UserRole
from ..repositories import UserRepository
from .session import get_session_maker, init_db

logger = logging.getLogger(__name__)


async def seed() -> User:
    """Create the super-admin unless one already exists; return it either way."""
    settings = get_settings()
    if settings.auto_create_tables:
        await init_db()

    async with get_session_maker()() as session:
        repository = UserRepository(session)
        existing = await repository.get_super_admin()
        if existing is not None:
            logger.info("Super admin already provisioned", extra={"user_id": existing.id})
            return existing

        email = settings.super_admin_email.strip().lower()
        user = await repository.get_by_email(email)
        if user is None:
            user = User(
                name=settings.super_admin_name,
                email=email,
                role=UserRole.SUPER_ADMIN,
                hashed_password=get_password_hash(settings.super_admin_password),
            )
            await repository.add(user)
        else:
            user.role = UserRole.SUPER_ADMIN
        await session.commit()
        logger.info("Super admin provisioned", extra={"user_id": user.id})
        return user


def main() -> None:
    """Entry-point hook for ``python -m`` execution."""
    configure_logging(get_settings())
    asyncio.run(seed())


if __name__ == "__main__":  # pragma: no cover - manual execution entry-point
    main()
