from __future__ import annotations

from io import BytesIO
from pathlib import Path

import pytest
from fastapi import UploadFile
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from taskgrid.core.config import Settings
from taskgrid.core.security import verify_password
from taskgrid.errors import PermissionDeniedError, ValidationError
from taskgrid.interchange import TASK_COLUMNS, TASKS_SHEET, USER_COLUMNS, USERS_SHEET, SheetSpec, build_workbook
from taskgrid.models import Task, TaskStatus, User, UserRole
from taskgrid.repositories import UserRepository
from taskgrid.services import ImportService, staged_upload

pytestmark = pytest.mark.asyncio


def _write_workbook(path: Path, users: list[dict], tasks: list[dict] | None = None) -> Path:
    sheets = [SheetSpec(title=USERS_SHEET, columns=USER_COLUMNS, rows=users)]
    if tasks is not None:
        sheets.append(SheetSpec(title=TASKS_SHEET, columns=TASK_COLUMNS, rows=tasks))
    path.write_bytes(build_workbook(sheets))
    return path


async def _caller(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id)
    assert user is not None
    return user


async def test_valid_rows_are_kept_when_a_later_row_fails(
    session: AsyncSession, settings: Settings, make_user, tmp_path: Path
) -> None:
    admin = await make_user(role=UserRole.ADMIN, login=False)
    workbook = _write_workbook(
        tmp_path / "users.xlsx",
        [
            {"Name": "Ada", "Email": "ada@example.com", "Role": "member", "Password": "adapass1"},
            {"Name": "Grace", "Email": "grace@example.com", "Role": "member"},
            {"Name": "Linus", "Email": "linus@example.com", "Role": "Member"},
            {"Name": "Nameless", "Role": "member"},
        ],
    )

    report = await ImportService(session, settings).import_users(workbook, await _caller(session, admin.id))

    assert report.users_created == 3
    assert report.users_updated == 0
    assert report.errors == ["[User Import] row 5: Missing required fields"]

    repository = UserRepository(session)
    ada = await repository.get_by_email("ada@example.com")
    grace = await repository.get_by_email("grace@example.com")
    assert ada is not None and grace is not None
    assert ada.created_by_id == admin.id
    assert verify_password("adapass1", ada.hashed_password)
    assert verify_password(settings.import_default_password, grace.hashed_password)


async def test_reimporting_an_export_updates_without_rehashing(
    session: AsyncSession, settings: Settings, make_user, tmp_path: Path
) -> None:
    admin = await make_user(role=UserRole.ADMIN, login=False)
    member = await make_user(login=False)
    stored = await session.get(User, member.id)
    stored_hash = stored.hashed_password

    workbook = _write_workbook(
        tmp_path / "members.xlsx",
        [
            {
                "ID": str(member.id),
                "Name": "Renamed Member",
                "Email": member.email,
                "Role": "member",
                "Password": stored_hash,
            }
        ],
    )

    report = await ImportService(session, settings).import_users(workbook, await _caller(session, admin.id))

    assert report.ok
    assert (report.users_created, report.users_updated) == (0, 1)
    updated = await session.get(User, member.id)
    assert updated.name == "Renamed Member"
    assert updated.hashed_password == stored_hash


async def test_admin_callers_cannot_touch_admins_or_the_super_admin(
    session: AsyncSession, settings: Settings, make_user, tmp_path: Path
) -> None:
    root = await make_user(role=UserRole.SUPER_ADMIN, login=False)
    admin = await make_user(role=UserRole.ADMIN, login=False)
    other_admin = await make_user(role=UserRole.ADMIN, login=False)

    workbook = _write_workbook(
        tmp_path / "users.xlsx",
        [
            {"Name": "Demoted", "Email": other_admin.email, "Role": "member"},
            {"Name": "Root", "Email": root.email, "Role": "member"},
            {"Name": "New Admin", "Email": "new-admin@example.com", "Role": "admin", "Admin Key": "invite-secret"},
        ],
    )

    report = await ImportService(session, settings).import_users(workbook, await _caller(session, admin.id))

    assert report.users_created == report.users_updated == 0
    assert report.errors == [
        "[User Import] row 2: Only superadmin can modify admin users",
        "[User Import] row 3: The super admin account cannot be modified by import",
        "[User Import] row 4: Only superadmin can create admin users",
    ]
    assert (await session.get(User, other_admin.id)).role == UserRole.ADMIN
    assert (await session.get(User, root.id)).role == UserRole.SUPER_ADMIN


async def test_super_admin_can_import_admins_with_the_invite_key(
    session: AsyncSession, settings: Settings, make_user, tmp_path: Path
) -> None:
    root = await make_user(role=UserRole.SUPER_ADMIN, login=False)
    workbook = _write_workbook(
        tmp_path / "admins.xlsx",
        [
            {"Name": "Admin", "Email": "admin-new@example.com", "Role": "admin", "Admin Key": "invite-secret"},
            {"Name": "Bad Key", "Email": "bad-key@example.com", "Role": "admin", "Admin Key": "nope"},
        ],
    )

    report = await ImportService(session, settings).import_users(workbook, await _caller(session, root.id))

    assert report.users_created == 1
    assert report.errors == ["[User Import] row 3: Invalid Admin Key"]
    created = await UserRepository(session).get_by_email("admin-new@example.com")
    assert created.role == UserRole.ADMIN


async def test_members_cannot_import(session: AsyncSession, settings: Settings, make_user, tmp_path: Path) -> None:
    member = await make_user(login=False)
    workbook = _write_workbook(tmp_path / "users.xlsx", [])

    with pytest.raises(PermissionDeniedError):
        await ImportService(session, settings).import_users(workbook, await _caller(session, member.id))


async def test_users_and_tasks_import_syncs_status_and_skips_bad_progress(
    session: AsyncSession, settings: Settings, make_user, tmp_path: Path
) -> None:
    admin = await make_user(role=UserRole.ADMIN, name="Boss", login=False)
    users = [{"Name": "Ada", "Email": "ada@example.com", "Role": "member"}]
    tasks = [
        {
            "Title": "Quarterly report",
            "Description": "Numbers",
            "Priority": "High",
            "Status": "Completed",
            "DueDate": "05/03/2024",
            "Progress": "100%",
            "AssignedTo": "Ada",
            "CreatedBy": "Boss",
            "Attachments": "Spec (https://example.com/spec)",
            "Todos": "Draft [✔] | Review [✘]",
        },
        {
            "Title": "Impossible",
            "Progress": "150%",
            "AssignedTo": "Ada",
            "CreatedBy": "Boss",
        },
    ]
    workbook = _write_workbook(tmp_path / "both.xlsx", users, tasks)
    service = ImportService(session, settings)

    report = await service.import_users_and_tasks(workbook, await _caller(session, admin.id))

    assert (report.users_created, report.tasks_created) == (1, 1)
    assert report.errors == ['[Task Import] row 3: Invalid progress value "150%"']

    stored = list(
        (await session.execute(select(Task).execution_options(populate_existing=True))).scalars().all()
    )
    assert [task.title for task in stored] == ["Quarterly report"]
    task = stored[0]
    assert task.status == TaskStatus.IN_PROGRESS
    assert task.progress == 50
    assert task.created_by_id == admin.id
    assert [user.email for user in task.assigned_to] == ["ada@example.com"]
    assert task.attachments == [{"name": "Spec", "url": "https://example.com/spec"}]

    again = await service.import_users_and_tasks(workbook, await _caller(session, admin.id))

    assert (again.users_updated, again.tasks_updated, again.tasks_created) == (1, 1, 0)
    assert len(list((await session.execute(select(Task))).scalars().all())) == 1


async def test_padded_headers_are_trimmed(
    session: AsyncSession, settings: Settings, make_user, tmp_path: Path
) -> None:
    admin = await make_user(role=UserRole.ADMIN, login=False)
    workbook = tmp_path / "padded.xlsx"
    workbook.write_bytes(
        build_workbook(
            [
                SheetSpec(
                    title=USERS_SHEET,
                    columns=[" Name ", "Email  ", " Role"],
                    rows=[{" Name ": "Ada", "Email  ": "ada@example.com", " Role": "member"}],
                )
            ]
        )
    )

    report = await ImportService(session, settings).import_users(workbook, await _caller(session, admin.id))

    assert report.errors == []
    assert report.users_created == 1
    assert await UserRepository(session).get_by_email("ada@example.com") is not None


async def test_save_failure_rejects_only_that_row(
    session: AsyncSession, settings: Settings, make_user, tmp_path: Path
) -> None:
    admin = await make_user(role=UserRole.ADMIN, login=False)
    first = await make_user(login=False)
    second = await make_user(login=False)
    workbook = _write_workbook(
        tmp_path / "collision.xlsx",
        [
            {"ID": str(first.id), "Name": first.name, "Email": second.email, "Role": "member"},
            {"Name": "Ada", "Email": "ada@example.com", "Role": "member"},
        ],
    )

    report = await ImportService(session, settings).import_users(workbook, await _caller(session, admin.id))

    assert report.errors == ["[User Import] row 2: Error saving user - IntegrityError"]
    assert report.users_created == 1
    assert report.users_updated == 0
    unchanged = await session.get(User, first.id)
    assert unchanged is not None
    await session.refresh(unchanged)
    assert unchanged.email == first.email


async def test_unreadable_workbook_is_a_validation_error(
    session: AsyncSession, settings: Settings, make_user, tmp_path: Path
) -> None:
    admin = await make_user(role=UserRole.ADMIN, login=False)
    broken = tmp_path / "users.xlsx"
    broken.write_bytes(b"not a workbook")

    with pytest.raises(ValidationError):
        await ImportService(session, settings).import_users(broken, await _caller(session, admin.id))


async def test_staged_upload_removes_the_temporary_file(tmp_path: Path) -> None:
    upload = UploadFile(file=BytesIO(b"payload"), filename="users.xlsx")

    async with staged_upload(upload, tmp_path) as path:
        assert path.parent == tmp_path
        assert path.read_bytes() == b"payload"
    assert list(tmp_path.iterdir()) == []

    with pytest.raises(RuntimeError):
        async with staged_upload(upload, tmp_path) as path:
            assert path.exists()
            raise RuntimeError("import crashed")
    assert list(tmp_path.iterdir()) == []
