from timekeeper.models.employee import Employee, EmployeeStatus, Department
from timekeeper.models.schedule import Schedule, ScheduleStatus, ShiftType
from timekeeper.models.attendance import (
    AttendanceLog, AttendanceUpload, OvertimeApproval,
    ApprovalStatus, UploadStatus,
)

__all__ = [
    "Employee",
    "EmployeeStatus",
    "Department",
    "Schedule",
    "ScheduleStatus",
    "ShiftType",
    "AttendanceLog",
    "AttendanceUpload",
    "OvertimeApproval",
    "ApprovalStatus",
    "UploadStatus",
]
