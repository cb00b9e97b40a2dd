"""Spreadsheet interchange: column layout, row formatting and row parsing."""

from .columns import TASK_COLUMNS, TASKS_SHEET, USER_COLUMNS, USERS_SHEET, XLSX_MEDIA_TYPE
from .formatter import format_task_row, format_user_row
from .parser import RowError, TaskRowData, UserRowData, parse_task_row, parse_user_row
from .workbook import SheetSpec, build_workbook, read_sheet

__all__ = [
    "RowError",
    "SheetSpec",
    "TASKS_SHEET",
    "TASK_COLUMNS",
    "TaskRowData",
    "USERS_SHEET",
    "USER_COLUMNS",
    "UserRowData",
    "XLSX_MEDIA_TYPE",
    "build_workbook",
    "format_task_row",
    "format_user_row",
    "parse_task_row",
    "parse_user_row",
    "read_sheet",
]
