from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime


class DepartmentOut(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class EmployeeBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    user_id: Optional[str] = Field(None, max_length=50)
    badge_id: Optional[str] = Field(None, max_length=50)
    department_id: Optional[int] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    hire_date: Optional[date] = None
    birth_date: Optional[date] = None


class EmployeeCreate(EmployeeBase):
    pass


class EmployeeOut(EmployeeBase):
    id: int
    status: str
    department: Optional[DepartmentOut] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
