from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime, time

from timekeeper.models.schedule import ScheduleStatus


class ScheduleCreate(BaseModel):
    employee_id: int
    date: date
    start_time: time
    end_time: time
    shift_type_id: Optional[int] = None
    location: Optional[str] = None
    status: ScheduleStatus = ScheduleStatus.PENDING


class ScheduleStatusUpdate(BaseModel):
    status: ScheduleStatus


class ScheduleOut(BaseModel):
    id: int
    employee_id: int
    shift_type_id: Optional[int] = None
    date: date
    start_time: time
    end_time: time
    location: Optional[str] = None
    status: str
    status_updated_at: Optional[datetime] = None
    auto_computed: bool = False

    class Config:
        from_attributes = True


class ReconcileDetail(BaseModel):
    id: int
    status: str


class ReconcileResult(BaseModel):
    updated: int
    details: List[ReconcileDetail]
