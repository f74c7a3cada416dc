from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from timekeeper.core.database import get_db
from timekeeper.core.security import CurrentUser, get_current_user
from timekeeper.models.employee import Employee, EmployeeStatus
from timekeeper.schemas.employee import EmployeeCreate, EmployeeOut

router = APIRouter(prefix="/api/employees", tags=["employees"])


@router.get("", response_model=List[EmployeeOut])
def list_employees(
    search: Optional[str] = None,
    department_id: Optional[int] = None,
    status: Optional[str] = None,
    limit: int = Query(200, ge=1, le=2000),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Employee).options(joinedload(Employee.department))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Employee.name.ilike(pattern), Employee.user_id.ilike(pattern)))
    if department_id:
        query = query.filter(Employee.department_id == department_id)
    if status:
        query = query.filter(Employee.status == status)
    return query.order_by(Employee.name).limit(limit).all()


@router.post("", response_model=EmployeeOut, status_code=201)
def create_employee(
    body: EmployeeCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if body.user_id and db.query(Employee).filter(Employee.user_id == body.user_id).first():
        raise HTTPException(status_code=400, detail="Employee ID already exists")
    if body.badge_id and db.query(Employee).filter(Employee.badge_id == body.badge_id).first():
        raise HTTPException(status_code=400, detail="Badge ID already exists")

    employee = Employee(**body.model_dump(), status=EmployeeStatus.ACTIVE.value)
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@router.get("/{employee_id}", response_model=EmployeeOut)
def get_employee(
    employee_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee
