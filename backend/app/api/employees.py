"""Employees API: roster used for bulk entry targets and approval roles."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_user, require_staff
from app.models.employee import Employee, EmployeeRole
from app.schemas.employee import Employee as EmployeeSchema, EmployeeCreate
from app.services.store import RecordStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/employees", tags=["employees"])


def require_admin(user: Employee):
    if user.role != EmployeeRole.ADMIN:
        raise HTTPException(status_code=403, detail="Admin access required")


@router.get("", response_model=List[EmployeeSchema])
def list_employees(
    current_user: Employee = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Active employees, by name."""
    return [EmployeeSchema.model_validate(e) for e in RecordStore(db).list_employees()]


@router.get("/me", response_model=EmployeeSchema)
def read_me(current_user: Employee = Depends(get_current_user)):
    return EmployeeSchema.model_validate(current_user)


@router.post("", response_model=EmployeeSchema, status_code=201)
def create_employee(
    payload: EmployeeCreate,
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Add an employee (admin only)."""
    require_admin(current_user)

    if db.query(Employee).filter(Employee.email == payload.email).first():
        raise HTTPException(status_code=400, detail="Email already exists")

    employee = RecordStore(db).add_employee(**payload.model_dump())
    logger.info(f"Employee {employee.id} ({employee.role.value}) created by {current_user.id}")
    return EmployeeSchema.model_validate(employee)
