from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from taskgrid.interchange import RowError, parse_task_row, parse_user_row
from taskgrid.interchange.formatter import format_attachments, format_todos
from taskgrid.interchange.parser import (
    UserRef,
    cell_text,
    parse_attachments,
    parse_identifier,
    parse_spreadsheet_date,
    parse_todos,
)
from taskgrid.models import TaskPriority, TaskStatus, UserRole

USERS = [
    UserRef(id=1, name="Boss", email="boss@example.com"),
    UserRef(id=2, name="Ada", email="ada@example.com"),
    UserRef(id=3, name="Grace", email="grace@example.com"),
]


def _task_row(**overrides) -> dict:
    row = {
        "Title": "Quarterly report",
        "Description": "Numbers",
        "Priority": "High",
        "Status": "Pending",
        "DueDate": "05/03/2024",
        "Progress": "50%",
        "AssignedTo": "Ada, grace@example.com",
        "CreatedBy": "boss@example.com",
        "Attachments": "",
        "Todos": "",
    }
    row.update(overrides)
    return row


class TestSpreadsheetDates:
    def test_serial_number_counts_days_from_spreadsheet_epoch(self) -> None:
        assert parse_spreadsheet_date(44197) == datetime(2021, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("text", ["05/03/2024", "5-3-24", "05.03.2024"])
    def test_day_month_year_strings(self, text: str) -> None:
        assert parse_spreadsheet_date(text) == datetime(2024, 3, 5, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("31/02/2021", datetime(2021, 3, 3, tzinfo=timezone.utc)),
            ("1/13/2023", datetime(2024, 1, 1, tzinfo=timezone.utc)),
            ("0/03/2024", datetime(2024, 2, 29, tzinfo=timezone.utc)),
        ],
    )
    def test_out_of_range_day_and_month_roll_over(self, text: str, expected: datetime) -> None:
        assert parse_spreadsheet_date(text) == expected

    def test_iso_strings_fall_through(self) -> None:
        assert parse_spreadsheet_date("2024-03-05") == datetime(2024, 3, 5, tzinfo=timezone.utc)
        assert parse_spreadsheet_date("2024-03-05T10:15:00") == datetime(2024, 3, 5, 10, 15, tzinfo=timezone.utc)

    def test_native_values_become_aware(self) -> None:
        assert parse_spreadsheet_date(date(2024, 3, 5)) == datetime(2024, 3, 5, tzinfo=timezone.utc)
        assert parse_spreadsheet_date(datetime(2024, 3, 5, 8)) == datetime(2024, 3, 5, 8, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "soon", True])
    def test_unrecognised_values_yield_none(self, value: object) -> None:
        assert parse_spreadsheet_date(value) is None


def test_cell_text_and_identifier_helpers() -> None:
    assert cell_text(12.0) == "12"
    assert cell_text("  padded ") == "padded"
    assert parse_identifier(12.0) == 12
    assert parse_identifier("abc") is None
    assert parse_identifier("0") is None


def test_attachments_and_todos_survive_format_then_parse() -> None:
    attachments = [
        {"name": "Spec", "url": "https://example.com/spec"},
        {"name": "Budget sheet", "url": "http://files.example.com/b.xlsx"},
    ]
    todos = [
        {"text": "Draft", "completed": True, "due_date": None},
        {"text": "Review with team", "completed": False, "due_date": None},
    ]

    assert parse_attachments(format_attachments(attachments)) == attachments
    assert parse_todos(format_todos(todos)) == todos


def test_malformed_segments_are_dropped_unless_strict() -> None:
    assert parse_attachments("Spec (https://example.com), just text") == [
        {"name": "Spec", "url": "https://example.com"}
    ]
    assert parse_todos("Draft [✔] | no marker") == [{"text": "Draft", "completed": True, "due_date": None}]

    with pytest.raises(ValueError):
        parse_attachments("just text", strict=True)
    with pytest.raises(ValueError):
        parse_todos("no marker", strict=True)


class TestUserRows:
    def test_valid_member_row(self) -> None:
        data = parse_user_row(
            {"ID": "7", "Name": " Ada ", "Email": "ADA@Example.com", "Role": "Member", "Password": ""},
            2,
            caller_role=UserRole.ADMIN,
            admin_invite_token="invite-secret",
        )

        assert data.user_id == 7
        assert data.name == "Ada"
        assert data.email == "ada@example.com"
        assert data.role is UserRole.MEMBER
        assert data.password is None

    def test_missing_email_is_reported_with_row_number(self) -> None:
        with pytest.raises(RowError) as excinfo:
            parse_user_row(
                {"Name": "Ada", "Role": "member"},
                5,
                caller_role=UserRole.ADMIN,
                admin_invite_token="invite-secret",
            )
        assert excinfo.value.message == "[User Import] row 5: Missing required fields"

    def test_unknown_role_is_rejected(self) -> None:
        with pytest.raises(RowError, match='Invalid role "owner"'):
            parse_user_row(
                {"Name": "Ada", "Email": "ada@example.com", "Role": "Owner"},
                2,
                caller_role=UserRole.SUPER_ADMIN,
                admin_invite_token="invite-secret",
            )

    def test_admin_rows_need_super_admin_caller(self) -> None:
        with pytest.raises(RowError, match="Only superadmin can create admin users"):
            parse_user_row(
                {"Name": "Ada", "Email": "ada@example.com", "Role": "admin", "Admin Key": "invite-secret"},
                2,
                caller_role=UserRole.ADMIN,
                admin_invite_token="invite-secret",
            )

    def test_admin_rows_need_matching_key(self) -> None:
        row = {"Name": "Ada", "Email": "ada@example.com", "Role": "admin", "Admin Key": "wrong"}
        with pytest.raises(RowError, match="Invalid Admin Key"):
            parse_user_row(row, 3, caller_role=UserRole.SUPER_ADMIN, admin_invite_token="invite-secret")

        row["Admin Key"] = "invite-secret"
        data = parse_user_row(row, 3, caller_role=UserRole.SUPER_ADMIN, admin_invite_token="invite-secret")
        assert data.role is UserRole.ADMIN


class TestTaskRows:
    def test_valid_row_resolves_people_and_fields(self) -> None:
        data = parse_task_row(_task_row(AssignedTo="Ada, nobody, GRACE@example.com, ada"), 2, users=USERS)

        assert data.title == "Quarterly report"
        assert data.created_by_id == 1
        assert data.assignee_ids == [2, 3]
        assert data.priority is TaskPriority.HIGH
        assert data.status is TaskStatus.PENDING
        assert data.progress == 50
        assert data.due_date == datetime(2024, 3, 5, tzinfo=timezone.utc)

    def test_defaults_and_aliases(self) -> None:
        data = parse_task_row(
            _task_row(Priority="", Status="In Progress", Progress="", Description=None),
            2,
            users=USERS,
        )

        assert data.priority is TaskPriority.MEDIUM
        assert data.status is TaskStatus.IN_PROGRESS
        assert data.progress == 0
        assert data.description == ""
        assert parse_task_row(_task_row(Priority="normal"), 2, users=USERS).priority is TaskPriority.MEDIUM

    def test_progress_above_hundred_is_rejected(self) -> None:
        with pytest.raises(RowError) as excinfo:
            parse_task_row(_task_row(Progress="150%"), 3, users=USERS)
        assert excinfo.value.message == '[Task Import] row 3: Invalid progress value "150%"'

    def test_non_numeric_progress_is_rejected(self) -> None:
        with pytest.raises(RowError, match="Invalid progress value"):
            parse_task_row(_task_row(Progress="half"), 3, users=USERS)

    def test_missing_title(self) -> None:
        with pytest.raises(RowError, match="Title is required"):
            parse_task_row(_task_row(Title="  "), 4, users=USERS)

    def test_unknown_priority(self) -> None:
        with pytest.raises(RowError, match='Invalid priority "urgent"'):
            parse_task_row(_task_row(Priority="urgent"), 4, users=USERS)

    def test_unresolved_creator(self) -> None:
        with pytest.raises(RowError, match='CreatedBy user "ghost" not found'):
            parse_task_row(_task_row(CreatedBy="ghost"), 4, users=USERS)

    def test_strict_segments_turn_into_row_errors(self) -> None:
        row = _task_row(Todos="Draft [✔] | broken")
        assert len(parse_task_row(row, 2, users=USERS).todo_checklist) == 1
        with pytest.raises(RowError, match='Invalid todo "broken"'):
            parse_task_row(row, 2, users=USERS, strict=True)
