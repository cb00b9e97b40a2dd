"""Reading and writing xlsx workbooks with openpyxl."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from os import PathLike
from typing import Any, Iterable, Mapping, Sequence

from openpyxl import Workbook, load_workbook


@dataclass(slots=True)
class SheetSpec:
    """One sheet of an exported workbook: a title, its headers and its rows."""

    title: str
    columns: Sequence[str]
    rows: Iterable[Mapping[str, Any]] = field(default_factory=list)


def build_workbook(sheets: Sequence[SheetSpec]) -> bytes:
    """Serialise ``sheets`` into an xlsx document.

    Every sheet gets a header row even when it has no data rows, so an empty
    export doubles as an import template.
    """

    workbook = Workbook()
    workbook.remove(workbook.active)
    for spec in sheets:
        worksheet = workbook.create_sheet(title=spec.title)
        worksheet.append(list(spec.columns))
        for row in spec.rows:
            worksheet.append([row.get(column, "") for column in spec.columns])

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def read_sheet(path: str | PathLike[str], sheet_name: str) -> list[tuple[int, dict[str, Any]]]:
    """Return ``(row_number, row)`` pairs for every non-blank data row.

    Header cells are trimmed and used as keys; ``row_number`` is the 1-based
    row in the sheet, so the first data row is 2. A missing sheet yields no
    rows.
    """

    workbook = load_workbook(filename=path, read_only=True, data_only=True)
    try:
        if sheet_name not in workbook.sheetnames:
            return []
        rows = workbook[sheet_name].iter_rows(values_only=True)
        header_row = next(rows, None)
        if header_row is None:
            return []
        headers = [str(cell).strip() if cell is not None else "" for cell in header_row]

        parsed: list[tuple[int, dict[str, Any]]] = []
        for row_number, values in enumerate(rows, start=2):
            if all(_is_blank(value) for value in values):
                continue
            record = {
                header: value
                for header, value in zip(headers, values)
                if header
            }
            parsed.append((row_number, record))
        return parsed
    finally:
        workbook.close()


__all__ = ["SheetSpec", "build_workbook", "read_sheet"]
