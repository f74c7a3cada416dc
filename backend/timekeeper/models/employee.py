from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from timekeeper.core.database import Base
import enum


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TERMINATED = "terminated"
    ON_LEAVE = "on_leave"


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employees = relationship("Employee", back_populates="department")


class Employee(Base):
    """HR-owned employee record.

    `user_id` is the external identifier printed by the biometric device and
    is what bulk imports match against by default. Rows are never hard-deleted
    while attendance history references them.
    """
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)

    # External identifiers (matched against uploaded files)
    user_id = Column(String(50), unique=True, nullable=True, index=True)
    badge_id = Column(String(50), unique=True, nullable=True, index=True)

    name = Column(String(255), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)
    status = Column(String, default=EmployeeStatus.ACTIVE.value, nullable=False)

    # HR fields
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    position = Column(String, nullable=True)
    salary = Column(Numeric(12, 2), nullable=True)
    hire_date = Column(Date, nullable=True)
    birth_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    department = relationship("Department", back_populates="employees")
    schedules = relationship("Schedule", back_populates="employee")
    attendance_logs = relationship("AttendanceLog", back_populates="employee")
