from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime
from app.models.employee import EmployeeRole


class EmployeeBase(BaseModel):
    name: str
    email: EmailStr
    department: Optional[str] = None
    position: Optional[str] = None
    role: EmployeeRole = EmployeeRole.EMPLOYEE


class EmployeeCreate(EmployeeBase):
    pass


class Employee(EmployeeBase):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
