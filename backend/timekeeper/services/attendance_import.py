"""
Bulk attendance import.

upload → parse → validate → resolve employees → drop duplicates → write.

File-level problems (unsupported format, no header, empty file) raise and
mark the upload failed. Row-level problems are collected and returned next
to the counts; the import is a success only when no row failed. Duplicate
rows are counted in duplicates_skipped, not reported as errors, so a
re-upload of the same file succeeds with nothing new written.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from timekeeper.core.config import settings
from timekeeper.core.exceptions import AttendanceError, RowError
from timekeeper.models.attendance import AttendanceUpload, UploadStatus
from timekeeper.services.attendance_guard import AttendanceGuard, validate_file_content
from timekeeper.services.attendance_writer import AttendanceWriter
from timekeeper.services.employee_resolver import EmployeeResolver
from timekeeper.services.file_formats import file_extension, read_grid
from timekeeper.services.record_parser import ColumnMapping, columns_from_aliases, parse_upload
from timekeeper.services.time_parsing import local_now, standardize_date

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 100


@dataclass
class ImportResult:
    success: bool
    message: str
    records_processed: int = 0
    errors: List[str] = field(default_factory=list)
    total_rows: int = 0
    duplicates_skipped: int = 0
    employees_created: int = 0
    employees_matched: int = 0
    warnings: List[str] = field(default_factory=list)
    upload_id: Optional[int] = None

    @property
    def is_partial(self) -> bool:
        return bool(self.errors) and self.records_processed > 0


class AttendanceImportService:
    """
    Runs one uploaded attendance file through the import pipeline and keeps
    an AttendanceUpload row as the record of what happened.
    """

    def __init__(self, db: Session):
        self.db = db
        self.guard = AttendanceGuard(db)
        self.resolver = EmployeeResolver(db)
        self.writer = AttendanceWriter(db)

    def create_upload_record(self, filename: str, file_size: int, uploaded_by: Optional[str]) -> AttendanceUpload:
        upload = AttendanceUpload(
            filename=filename,
            file_type=file_extension(filename),
            file_size=file_size,
            uploaded_by=uploaded_by,
            status=UploadStatus.PROCESSING.value,
            processing_started_at=datetime.now(timezone.utc),
        )
        self.db.add(upload)
        self.db.commit()
        self.db.refresh(upload)
        return upload

    def import_file(
        self,
        file_bytes: bytes,
        filename: str,
        uploaded_by: Optional[str] = None,
        column_mapping: Optional[ColumnMapping] = None,
        now: Optional[datetime] = None,
    ) -> ImportResult:
        now = now or local_now()
        upload = self.create_upload_record(filename, len(file_bytes), uploaded_by)
        logger.info(f"Import {upload.id}: {filename} ({len(file_bytes)} bytes) by {uploaded_by}")

        try:
            parsed = parse_upload(file_bytes, filename, column_mapping)
        except AttendanceError as e:
            logger.warning(f"Import {upload.id}: {filename} rejected: {e}")
            self._finish(upload, UploadStatus.FAILED, error_message=str(e))
            raise
        except Exception as e:
            logger.error(f"Import {upload.id}: {filename} could not be parsed: {e}", exc_info=True)
            self._finish(upload, UploadStatus.FAILED, error_message=str(e)[:500])
            raise

        upload.total_rows = parsed.total_rows
        upload.report_start_date = _optional_date(parsed.metadata.get("start_date"))
        upload.report_end_date = _optional_date(parsed.metadata.get("end_date"))

        if not parsed.entries and not parsed.row_errors:
            self._finish(upload, UploadStatus.FAILED, error_message="No valid records found in file")
            return ImportResult(
                success=False,
                message="No valid records found in file",
                errors=["No valid records found in file"],
                total_rows=parsed.total_rows,
                upload_id=upload.id,
            )

        try:
            checked = self.guard.validate(parsed.entries, now)
            resolved = self.resolver.resolve(checked.valid)
            matched = [e for e in checked.valid if e.employee_id in resolved.employee_map]
            fresh = self.guard.filter_duplicates(matched, resolved.employee_map)
            written = self.writer.write(fresh.valid, resolved.employee_map, upload.id, uploaded_by)
        except Exception as e:
            logger.error(f"Import {upload.id}: processing failed: {e}", exc_info=True)
            self.db.rollback()
            self._finish(upload, UploadStatus.FAILED, error_message=str(e)[:500])
            raise

        errors: List[RowError] = sorted(
            parsed.row_errors + checked.rejected + resolved.errors + written.errors,
            key=lambda err: err.row,
        )
        duplicates = len(fresh.rejected) + written.duplicates

        result = ImportResult(
            success=not errors,
            message=_summary_message(written.processed, duplicates, len(errors)),
            records_processed=written.processed,
            errors=[str(err) for err in errors[:MAX_REPORTED_ERRORS]],
            total_rows=parsed.total_rows,
            duplicates_skipped=duplicates,
            employees_created=resolved.created,
            employees_matched=resolved.matched,
            warnings=[str(w) for w in checked.warnings[:MAX_REPORTED_ERRORS]],
            upload_id=upload.id,
        )

        upload.records_processed = written.processed
        upload.duplicates_skipped = duplicates
        upload.error_rows = len(errors)
        upload.employees_created = resolved.created
        upload.employees_matched = resolved.matched
        if not errors:
            status = UploadStatus.COMPLETED
        elif written.processed:
            status = UploadStatus.PARTIAL
        else:
            status = UploadStatus.FAILED
        self._finish(upload, status, error_message=None if not errors else f"{len(errors)} rows failed")

        logger.info(
            f"Import {upload.id} {status.value}: {result.records_processed} inserted, "
            f"{duplicates} duplicates, {len(errors)} errors"
        )
        return result

    def _finish(self, upload: AttendanceUpload, status: UploadStatus, error_message: Optional[str] = None):
        upload.status = status.value
        upload.error_message = error_message
        upload.processing_completed_at = datetime.now(timezone.utc)
        self.db.commit()

    def preview_file(self, file_bytes: bytes, filename: str, content_type: Optional[str] = None) -> dict:
        """Header row, first rows and a suggested column mapping, without writing anything."""
        try:
            grid = read_grid(file_bytes, filename)
        except AttendanceError as e:
            return {
                "success": False,
                "message": f"File parsing failed: {e}. Please ensure your file is properly formatted.",
            }

        headers = [h for h in grid.headers if h]
        if not headers:
            return {
                "success": False,
                "message": "No headers found in file. Please ensure your file has a header row.",
            }

        errors = validate_file_content(headers, grid.data_rows)
        if errors:
            return {"success": False, "message": "File validation failed", "errors": errors}

        aliases = columns_from_aliases(grid.headers)
        suggested = {}
        if aliases is not None:
            for name in ("employee_id", "name", "date", "time_in", "time_out", "department"):
                index = getattr(aliases, name)
                if index >= 0:
                    suggested[name] = grid.headers[index]

        return {
            "success": True,
            "headers": headers,
            "rows": grid.data_rows[:settings.PREVIEW_ROWS],
            "row_count": len(grid.data_rows),
            "suggested_mapping": suggested,
            "file_info": {
                "name": filename,
                "size": len(file_bytes),
                "type": content_type or grid.file_type,
                "format": grid.file_type,
                "header_row": grid.header_index,
                "start_date": grid.start_date,
                "end_date": grid.end_date,
            },
        }


def _summary_message(processed: int, duplicates: int, errors: int) -> str:
    if not errors:
        message = f"Successfully processed {processed} attendance records"
        if duplicates:
            message += f" ({duplicates} duplicates skipped)"
        return message
    if processed:
        return f"Processed {processed} records with {errors} errors. Please review and correct the issues."
    return f"Processing completed with {errors} errors. No records were saved."


def _optional_date(value: Optional[str]):
    if not value:
        return None
    try:
        return datetime.strptime(standardize_date(value), "%Y-%m-%d").date()
    except AttendanceError:
        return None
