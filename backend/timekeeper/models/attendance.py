"""Attendance models.

An attendance log is unique per (employee, check-in minute); that pair is the
idempotency key for bulk imports. Approved overtime lives in its own table,
keyed by attendance log, so the approval workflow never rewrites the log.
"""
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Date, Boolean, Text, ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from timekeeper.core.database import Base
import enum


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class UploadStatus(str, enum.Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class AttendanceUpload(Base):
    """Provenance record for one bulk attendance file."""
    __tablename__ = "attendance_uploads"

    id = Column(Integer, primary_key=True, index=True)

    # File info
    filename = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    file_size = Column(Integer, nullable=True)
    uploaded_by = Column(String, nullable=True, index=True)

    status = Column(String, default=UploadStatus.PROCESSING.value, nullable=False)

    # Processing results
    total_rows = Column(Integer, default=0)
    records_processed = Column(Integer, default=0)
    duplicates_skipped = Column(Integer, default=0)
    error_rows = Column(Integer, default=0)
    employees_created = Column(Integer, default=0)
    employees_matched = Column(Integer, default=0)

    # Report period printed in the export header, when present
    report_start_date = Column(Date, nullable=True)
    report_end_date = Column(Date, nullable=True)

    processing_started_at = Column(DateTime(timezone=True), nullable=True)
    processing_completed_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    logs = relationship("AttendanceLog", back_populates="upload")


class AttendanceLog(Base):
    __tablename__ = "attendance_logs"
    __table_args__ = (
        UniqueConstraint("employee_id", "check_in_time", name="uq_attendance_employee_check_in"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id"), nullable=True, index=True)

    date = Column(Date, nullable=False, index=True)

    # Wall-clock instants as recorded by the device (minute precision)
    check_in_time = Column(DateTime, nullable=False)
    check_out_time = Column(DateTime, nullable=True)

    # Derived hours
    total_hours = Column(Float, default=0)
    regular_hours = Column(Float, default=0)
    raw_ot_hours = Column(Float, default=0)
    approved_ot_hours = Column(Float, default=0)
    sunday_hours = Column(Float, default=0)
    overnight_hours = Column(Float, default=0)

    is_sunday = Column(Boolean, default=False)
    is_overnight = Column(Boolean, default=False)
    is_incomplete = Column(Boolean, default=True)

    approval_status = Column(String, default=ApprovalStatus.PENDING.value, nullable=False)
    notes = Column(Text, nullable=True)

    # Provenance
    upload_id = Column(Integer, ForeignKey("attendance_uploads.id"), nullable=True, index=True)
    uploaded_by = Column(String, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    employee = relationship("Employee", back_populates="attendance_logs")
    schedule = relationship("Schedule", back_populates="attendance_logs")
    upload = relationship("AttendanceUpload", back_populates="logs")
    overtime_approval = relationship(
        "OvertimeApproval", back_populates="attendance_log", uselist=False,
        cascade="all, delete-orphan",
    )


class OvertimeApproval(Base):
    """Approved overtime quantity for one attendance log."""
    __tablename__ = "overtime_approvals"

    id = Column(Integer, primary_key=True, index=True)
    attendance_log_id = Column(
        Integer, ForeignKey("attendance_logs.id"), unique=True, nullable=False, index=True
    )
    approved_hours = Column(Float, nullable=False, default=0)
    status = Column(String, default=ApprovalStatus.APPROVED.value, nullable=False)
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime(timezone=True), server_default=func.now())
    note = Column(String, nullable=True)

    attendance_log = relationship("AttendanceLog", back_populates="overtime_approval")
