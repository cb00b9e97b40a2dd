from __future__ import annotations

import os

os.environ.setdefault("TASKGRID_ENVIRONMENT", "test")
os.environ.setdefault("TASKGRID_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TASKGRID_AUTO_CREATE_TABLES", "false")
os.environ.setdefault("TASKGRID_ADMIN_INVITE_TOKEN", "invite-secret")

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from itertools import count
from typing import Awaitable

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from taskgrid import models  # noqa: F401  registers table metadata
from taskgrid.core.config import Settings, get_settings
from taskgrid.core.security import get_password_hash
from taskgrid.deps import get_db_session
from taskgrid.main import create_app
from taskgrid.models import Task, TaskPriority, User, UserRole
from taskgrid.services.status_sync import sync_task_status

ADMIN_INVITE_TOKEN = "invite-secret"
DEFAULT_PASSWORD = "Secret123!"


@dataclass(slots=True)
class AuthenticatedUser:
    """Plain snapshot of a persisted test user; safe to read after a rollback."""

    id: int
    name: str
    email: str
    password: str
    role: UserRole
    token: str | None

    @property
    def headers(self) -> dict[str, str]:
        if not self.token:
            raise RuntimeError("User has not been authenticated.")
        return {"Authorization": f"Bearer {self.token}"}


UserFactory = Callable[..., Awaitable[AuthenticatedUser]]


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def app(session: AsyncSession) -> AsyncIterator[FastAPI]:
    application = create_app()

    async def _override_db_session() -> AsyncIterator[AsyncSession]:
        yield session

    application.dependency_overrides[get_db_session] = _override_db_session
    try:
        yield application
    finally:
        application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as http_client:
        yield http_client


@pytest_asyncio.fixture
async def make_user(session: AsyncSession, client: AsyncClient) -> AsyncIterator[UserFactory]:
    """Persist a user with the given role and, by default, log it in."""

    counter = count(1)

    async def _factory(
        *,
        role: UserRole = UserRole.MEMBER,
        name: str | None = None,
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        login: bool = True,
    ) -> AuthenticatedUser:
        index = next(counter)
        actual_name = name or f"{role.value.replace('_', ' ').title()} {index}"
        actual_email = email or f"{role.value}-{index}@example.com"
        user = User(
            name=actual_name,
            email=actual_email,
            role=role,
            hashed_password=get_password_hash(password),
        )
        session.add(user)
        await session.commit()
        assert user.id is not None

        token: str | None = None
        if login:
            response = await client.post(
                "/api/auth/login",
                json={"email": actual_email, "password": password},
            )
            assert response.status_code == 200, response.text
            token = response.json()["token"]
            # Requests must authenticate explicitly through their headers.
            client.cookies.clear()
        return AuthenticatedUser(
            id=user.id,
            name=actual_name,
            email=actual_email,
            password=password,
            role=role,
            token=token,
        )

    yield _factory


@pytest_asyncio.fixture
async def make_task(session: AsyncSession) -> AsyncIterator[Callable[..., Awaitable[int]]]:
    """Insert a task directly, bypassing the API; returns its id."""

    async def _factory(
        *,
        title: str,
        created_by_id: int,
        assignee_ids: list[int],
        priority: TaskPriority = TaskPriority.MEDIUM,
        todo_checklist: list[dict] | None = None,
    ) -> int:
        assignees = [await session.get(User, user_id) for user_id in assignee_ids]
        task = Task(
            title=title,
            description=f"{title} description",
            priority=priority,
            created_by_id=created_by_id,
            todo_checklist=todo_checklist or [],
        )
        task.assigned_to = [user for user in assignees if user is not None]
        sync_task_status(task)
        session.add(task)
        await session.commit()
        assert task.id is not None
        return task.id

    yield _factory
