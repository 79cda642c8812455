"""Identity/role provider.

Authentication happens upstream; the gateway forwards the signed-in
employee's id in the ``X-Employee-Id`` header. This module only resolves that
id to an active employee so routes can make role decisions.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.employee import Employee, EmployeeRole


def get_current_user(
    x_employee_id: Optional[int] = Header(None),
    db: Session = Depends(get_db),
) -> Employee:
    if x_employee_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Employee-Id header",
        )

    user = db.query(Employee).filter(Employee.id == x_employee_id).first()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or inactive employee",
        )
    return user


def require_staff(current_user: Employee = Depends(get_current_user)) -> Employee:
    """Admins and managers only."""
    if current_user.role not in (EmployeeRole.ADMIN, EmployeeRole.MANAGER):
        raise HTTPException(status_code=403, detail="Admin or manager access required")
    return current_user
