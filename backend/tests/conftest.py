import os

# Must be set before app.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DASHBOARD_REFRESH_ENABLED"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

from app.core.database import Base, SessionLocal, engine  # noqa: E402
from app.models import (  # noqa: E402
    ApprovalStatus, Employee, EmployeeRole, HourCategory, LeaveRequest, LeaveType, TimeEntry,
)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def staff(db):
    people = {
        "admin": Employee(name="Ada Admin", email="admin@example.com", role=EmployeeRole.ADMIN),
        "manager": Employee(name="Max Manager", email="manager@example.com", role=EmployeeRole.MANAGER),
        "a": Employee(name="Alice", email="alice@example.com", role=EmployeeRole.EMPLOYEE),
        "b": Employee(name="Bob", email="bob@example.com", role=EmployeeRole.EMPLOYEE),
        "c": Employee(name="Carol", email="carol@example.com", role=EmployeeRole.EMPLOYEE),
        "d": Employee(name="Dan", email="dan@example.com", role=EmployeeRole.EMPLOYEE),
    }
    db.add_all(people.values())
    db.commit()
    for person in people.values():
        db.refresh(person)
    return people


@pytest.fixture
def make_entry(db):
    def _make(employee, work_date, clock_in, clock_out, category=HourCategory.REGULAR,
              status=ApprovalStatus.APPROVED, hours=None):
        entry = TimeEntry(
            employee_id=employee.id,
            date=work_date,
            clock_in=clock_in,
            clock_out=clock_out,
            hours=hours if hours is not None else 0,
            category=category,
            status=status,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    return _make


@pytest.fixture
def make_leave(db):
    def _make(employee, start, end, status=ApprovalStatus.PENDING, leave_type=LeaveType.VACATION):
        request = LeaveRequest(
            employee_id=employee.id,
            leave_type=leave_type,
            start_date=start,
            end_date=end,
            days_count=(end - start).days + 1,
            status=status,
        )
        db.add(request)
        db.commit()
        db.refresh(request)
        return request
    return _make


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient
    from app.main import app

    with TestClient(app) as c:
        yield c

