"""Bulk attendance upload endpoints.

/validate must stay declared before anything that could swallow the path.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from timekeeper.core.config import settings
from timekeeper.core.database import get_db
from timekeeper.core.exceptions import AttendanceError
from timekeeper.core.security import CurrentUser, get_current_user
from timekeeper.schemas.attendance import ImportResponse
from timekeeper.services.attendance_import import AttendanceImportService
from timekeeper.services.file_formats import SUPPORTED_EXTENSIONS, file_extension
from timekeeper.services.record_parser import ColumnMapping

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/upload-attendance", tags=["upload-attendance"])


class UploadRejected(Exception):
    """A file or form field refused before any parsing."""


def _rejection(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": message, "errors": [message]},
    )


async def _read_upload(file: Optional[UploadFile]) -> bytes:
    if file is None or not file.filename:
        raise UploadRejected("No file provided")

    extension = file_extension(file.filename)
    if extension not in SUPPORTED_EXTENSIONS:
        raise UploadRejected(f"Invalid file type. Supported types: {', '.join(SUPPORTED_EXTENSIONS)}")

    file_bytes = await file.read()
    if len(file_bytes) == 0:
        raise UploadRejected("Empty file")
    if len(file_bytes) > settings.MAX_UPLOAD_SIZE:
        raise UploadRejected(f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB")
    return file_bytes


def _parse_mapping(raw: Optional[str]) -> Optional[ColumnMapping]:
    if not raw:
        return None
    try:
        return ColumnMapping.from_dict(json.loads(raw))
    except (ValueError, TypeError):
        raise UploadRejected("Invalid column mapping format")


@router.post("/validate")
async def validate_upload(
    file: Optional[UploadFile] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Preview headers, the first rows and a suggested mapping. Writes nothing."""
    try:
        file_bytes = await _read_upload(file)
    except UploadRejected as e:
        return _rejection(str(e))
    service = AttendanceImportService(db)
    return service.preview_file(file_bytes, file.filename, file.content_type)


@router.post("")
async def upload_attendance(
    file: Optional[UploadFile] = File(None),
    columnMapping: Optional[str] = Form(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Import an attendance file. 207 when some rows were written and some failed."""
    try:
        file_bytes = await _read_upload(file)
        mapping = _parse_mapping(columnMapping)
    except UploadRejected as e:
        return _rejection(str(e))

    logger.info(f"Attendance upload {file.filename} ({len(file_bytes)} bytes) by {current_user.id}")
    service = AttendanceImportService(db)
    try:
        result = service.import_file(
            file_bytes, file.filename, uploaded_by=current_user.id, column_mapping=mapping,
        )
    except AttendanceError as e:
        failed = ImportResponse(
            success=False,
            message=f"File processing failed: {e}",
            errors=[str(e)],
        )
        return failed.model_dump(by_alias=True)

    response = ImportResponse(**result.__dict__)
    status_code = 207 if result.is_partial else 200
    return JSONResponse(status_code=status_code, content=response.model_dump(by_alias=True))
