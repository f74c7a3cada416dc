from sqlalchemy import Column, Integer, String, DateTime, Date, Time, Boolean, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from timekeeper.core.database import Base
import enum


class ScheduleStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"    # observed by the check-in action, never by the job
    COMPLETED = "completed"      # terminal
    NO_SHOW = "no-show"          # terminal


class ShiftType(Base):
    __tablename__ = "shift_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    is_operational = Column(Boolean, default=True)
    default_start_time = Column(Time, nullable=True)
    default_end_time = Column(Time, nullable=True)
    description = Column(Text, nullable=True)


class Schedule(Base):
    """A planned shift for one employee on one calendar date."""
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    shift_type_id = Column(Integer, ForeignKey("shift_types.id"), nullable=True)

    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    location = Column(String, nullable=True)

    status = Column(String, default=ScheduleStatus.PENDING.value, nullable=False, index=True)
    status_updated_at = Column(DateTime(timezone=True), nullable=True)
    auto_computed = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    employee = relationship("Employee", back_populates="schedules")
    shift_type = relationship("ShiftType")
    attendance_logs = relationship("AttendanceLog", back_populates="schedule")
