"""Spreadsheet export and import endpoints."""

from __future__ import annotations

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import StreamingResponse

from ...deps import CurrentUserDependency, DatabaseSessionDependency, SettingsDependency
from ...errors import ImportFailedError
from ...interchange import XLSX_MEDIA_TYPE
from ...schemas import ImportResponse
from ...services import ExportFile, ExportService, ImportReport, ImportService, staged_upload

router = APIRouter(prefix="/reports", tags=["reports"])


def _download(export: ExportFile) -> StreamingResponse:
    return StreamingResponse(
        iter([export.content]),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


def _import_outcome(report: ImportReport, message: str) -> ImportResponse:
    if not report.ok:
        raise ImportFailedError(report.errors, summary=report.summary())
    return ImportResponse(message=message, **report.summary())


@router.get("/export/users-template", summary="Download an empty Users sheet")
async def export_users_template(
    current_user: CurrentUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> StreamingResponse:
    return _download(ExportService(session, settings).users_template(current_user))


@router.get("/export/users", summary="Download the users visible to the caller")
async def export_users(
    current_user: CurrentUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> StreamingResponse:
    return _download(await ExportService(session, settings).users(current_user))


@router.get("/export/tasks", summary="Download the tasks visible to the caller")
async def export_tasks(
    current_user: CurrentUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> StreamingResponse:
    return _download(await ExportService(session, settings).tasks(current_user))


@router.get(
    "/export/users-task-template",
    summary="Download visible users with an empty Tasks sheet",
)
async def export_users_task_template(
    current_user: CurrentUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> StreamingResponse:
    return _download(await ExportService(session, settings).users_with_task_template(current_user))


@router.get("/export/users-and-tasks", summary="Download visible users and tasks")
async def export_users_and_tasks(
    current_user: CurrentUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> StreamingResponse:
    return _download(await ExportService(session, settings).users_and_tasks(current_user))


@router.post("/import/users", response_model=ImportResponse, summary="Import the Users sheet")
async def import_users(
    current_user: CurrentUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
    file: UploadFile = File(..., description="xlsx workbook with a Users sheet"),
) -> ImportResponse:
    service = ImportService(session, settings)
    async with staged_upload(file, settings.upload_dir) as path:
        report = await service.import_users(path, current_user)
    return _import_outcome(report, "Users imported successfully.")


@router.post(
    "/import/users-and-tasks",
    response_model=ImportResponse,
    summary="Import the Users sheet, then the Tasks sheet",
)
async def import_users_and_tasks(
    current_user: CurrentUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
    file: UploadFile = File(..., description="xlsx workbook with Users and Tasks sheets"),
) -> ImportResponse:
    service = ImportService(session, settings)
    async with staged_upload(file, settings.upload_dir) as path:
        report = await service.import_users_and_tasks(path, current_user)
    return _import_outcome(report, "Users and tasks imported successfully.")
