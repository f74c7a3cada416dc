from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import date, datetime


class AttendanceOut(BaseModel):
    id: int
    employee_id: int
    schedule_id: Optional[int] = None
    date: date
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    total_hours: float = 0
    regular_hours: float = 0
    raw_ot_hours: float = 0
    approved_ot_hours: float = 0
    sunday_hours: float = 0
    overnight_hours: float = 0
    is_sunday: bool = False
    is_overnight: bool = False
    is_incomplete: bool = True
    approval_status: str
    notes: Optional[str] = None
    upload_id: Optional[int] = None
    uploaded_by: Optional[str] = None

    class Config:
        from_attributes = True


class AttendanceSummary(BaseModel):
    total_days_worked: int
    total_hours_worked: float
    total_overtime_hours: float
    total_approved_overtime: float
    total_sunday_hours: float
    total_overnight_hours: float
    total_employees: int


class CheckInRequest(BaseModel):
    employee_id: int
    schedule_id: Optional[int] = None
    note: Optional[str] = None


class CheckOutRequest(BaseModel):
    employee_id: int


class BulkApproveRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)
    approved_hours: Optional[float] = Field(None, ge=0)
    note: Optional[str] = None


class BulkDeleteRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class ImportResponse(BaseModel):
    """Upload result as the dashboard reads it (camelCase on the wire)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: str
    records_processed: int = 0
    errors: List[str] = []
    total_rows: int = 0
    duplicates_skipped: int = 0
    employees_created: int = 0
    employees_matched: int = 0
    warnings: List[str] = []
    upload_id: Optional[int] = None
