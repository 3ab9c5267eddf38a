"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time, so the environment comes first
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-hrms-suite-0123456789")
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SYNC_RETRY_BACKOFF_SECONDS"] = "0"
os.environ.setdefault("CALENDAR_TZ", "UTC")

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hrms.core.deps import get_clock, get_db
from hrms.core.security import hash_password
from hrms.db.base import Base
from hrms.main import app
from hrms.models import (  # noqa: F401
    AttendanceRecord,
    AttendanceStatus,
    AuditLog,
    Employee,
    EmployeeStatus,
    LeaveDayClaim,
    LeaveRequest,
    User,
)
from hrms.utils.datetime_utils import FixedClock

SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "testpass123"


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    """Clock frozen at 2024-01-20 09:00 UTC"""
    return FixedClock(datetime(2024, 1, 20, 9, 0, tzinfo=timezone.utc))


@pytest.fixture(scope="function")
def client(db, clock):
    """Test client fixture with database and clock overrides"""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def hr_user(db):
    """Login account used as the acting user"""
    user = User(username="hr.admin", name="HR Admin", password_hash=hash_password(TEST_PASSWORD), active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth_headers(client, hr_user):
    response = client.post(
        "/api/v1/auth/login",
        json={"username": hr_user.username, "password": TEST_PASSWORD}
    )
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_employee(db):
    """Factory creating employees with unique emails"""
    counter = {"n": 0}

    def _make(name="Test Employee", status=EmployeeStatus.ACTIVE, department="Engineering"):
        counter["n"] += 1
        employee = Employee(
            name=name,
            email=f"employee{counter['n']}@example.com",
            phone="555-0100",
            position="Developer",
            department=department,
            joining_date=date(2023, 6, 1),
            salary=Decimal("50000.00"),
            status=status,
        )
        db.add(employee)
        db.commit()
        db.refresh(employee)
        return employee

    return _make


@pytest.fixture
def employee(make_employee):
    return make_employee(name="Alice Example")


@pytest.fixture
def add_attendance(db, hr_user, clock):
    """Insert an attendance record directly"""
    def _add(employee_id, day, status=AttendanceStatus.PRESENT):
        record = AttendanceRecord(
            employee_id=employee_id,
            day=day,
            status=status,
            created_by=hr_user.id,
            created_at=clock.now(),
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _add


@pytest.fixture
def eligible_employee(employee, add_attendance):
    """Active employee with one 'present' record on 2024-01-05"""
    add_attendance(employee.id, date(2024, 1, 5))
    return employee
