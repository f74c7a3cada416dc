"""Error taxonomy for attendance ingestion and reconciliation.

File-level errors (FormatError, StructuralError) abort an import. Everything
else is collected per row as a RowError and returned next to the counts.
"""
from dataclasses import dataclass


class AttendanceError(Exception):
    """Base class for every error raised by the attendance pipeline."""


# ── File level ───────────────────────────────────────────────────────

class FormatError(AttendanceError):
    pass


class UnsupportedFormat(FormatError):
    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"Unsupported file format: {extension or 'unknown'}")


class StructuralError(AttendanceError):
    pass


class EmptyFile(StructuralError):
    def __init__(self, message: str = "File appears to be empty"):
        super().__init__(message)


class MissingHeaders(StructuralError):
    def __init__(self, message: str = "No headers found in file"):
        super().__init__(message)


# ── Row level ────────────────────────────────────────────────────────

class RowValidationError(AttendanceError):
    pass


class MissingEmployeeId(RowValidationError):
    def __init__(self):
        super().__init__("Employee ID is required")


class MissingDate(RowValidationError):
    def __init__(self):
        super().__init__("Date is required")


class InvalidDate(RowValidationError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Unable to parse date: {value}")


class InvalidTime(RowValidationError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Unable to parse time: {value}")


class DuplicateEntry(AttendanceError):
    pass


class ResolutionError(AttendanceError):
    pass


class PersistenceError(AttendanceError):
    pass


class ReconciliationError(AttendanceError):
    pass


@dataclass(frozen=True)
class RowError:
    """A non-fatal problem tied to one source row (1-based, 0 when unknown)."""
    row: int
    error: str

    def __str__(self) -> str:
        if self.row:
            return f"Row {self.row}: {self.error}"
        return self.error


def storage_message(exc: Exception, limit: int = 200) -> str:
    """First line of a storage error, trimmed so driver internals stay server-side."""
    text = str(getattr(exc, "orig", None) or exc).strip()
    if not text:
        return type(exc).__name__
    return text.splitlines()[0][:limit]
