"""
Tests for leave applications: eligibility, overlap rules and listing
"""
from datetime import date

import pytest
from fastapi import status
from sqlalchemy.exc import IntegrityError

from hrms.core.config import settings
from hrms.core.exceptions import OverlappingLeave, ValidationError
from hrms.models.attendance import AttendanceStatus
from hrms.models.employee import EmployeeStatus
from hrms.models.leave import LeaveDayClaim, LeaveRequest, LeaveStatus, LeaveType
from hrms.services import leave_service


def apply_leave(client, headers, employee_id, start, end, leave_type="casual", reason="Family event"):
    return client.post(
        "/api/v1/leaves",
        json={
            "employee": employee_id,
            "startDate": start,
            "endDate": end,
            "reason": reason,
            "type": leave_type,
        },
        headers=headers,
    )


def test_apply_leave_creates_pending_request(client, auth_headers, eligible_employee, db):
    response = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2024-01-12")
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "pending"
    assert data["start_day"] == "2024-01-10"
    assert data["end_day"] == "2024-01-12"
    assert data["leave_type"] == "casual"
    assert data["needs_reconciliation"] is False

    claims = db.query(LeaveDayClaim).filter(LeaveDayClaim.leave_id == data["id"]).all()
    assert sorted(c.day for c in claims) == [date(2024, 1, 10), date(2024, 1, 11), date(2024, 1, 12)]


def test_overlapping_leave_rejected(client, auth_headers, eligible_employee, db):
    assert apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2024-01-12").status_code == 201

    response = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-11", "2024-01-15", "sick")
    assert response.status_code == status.HTTP_409_CONFLICT
    body = response.json()
    assert body["code"] == "overlapping_leave"
    assert "2024-01-10" in body["detail"]
    assert db.query(LeaveRequest).count() == 1


def test_leave_sharing_an_endpoint_day_is_an_overlap(client, auth_headers, eligible_employee):
    apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2024-01-12")
    response = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-12", "2024-01-12")
    assert response.status_code == status.HTTP_409_CONFLICT


def test_adjacent_leave_allowed(client, auth_headers, eligible_employee):
    apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2024-01-12")
    response = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-13", "2024-01-14")
    assert response.status_code == status.HTTP_201_CREATED


def test_overlap_is_per_employee(client, auth_headers, eligible_employee, make_employee, add_attendance):
    other = make_employee(name="Bob Other")
    add_attendance(other.id, date(2024, 1, 2))
    apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2024-01-12")
    response = apply_leave(client, auth_headers, other.id, "2024-01-10", "2024-01-12")
    assert response.status_code == status.HTTP_201_CREATED


def test_rejected_leave_does_not_block(client, auth_headers, eligible_employee):
    first = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2024-01-12").json()
    rejected = client.put(f"/api/v1/leaves/{first['id']}", json={"status": "rejected"}, headers=auth_headers)
    assert rejected.status_code == status.HTTP_200_OK

    response = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-11", "2024-01-15")
    assert response.status_code == status.HTTP_201_CREATED


def test_approved_leave_blocks(client, auth_headers, eligible_employee):
    first = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2024-01-12").json()
    client.put(f"/api/v1/leaves/{first['id']}", json={"status": "approved"}, headers=auth_headers)

    response = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-12", "2024-01-20")
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "overlapping_leave"


def test_leave_requires_present_attendance(client, auth_headers, employee, add_attendance):
    # Absent and half-day history does not count
    add_attendance(employee.id, date(2024, 1, 3), AttendanceStatus.ABSENT)
    add_attendance(employee.id, date(2024, 1, 4), AttendanceStatus.HALF_DAY)

    response = apply_leave(client, auth_headers, employee.id, "2024-01-10", "2024-01-12")
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "no_attendance_history"


def test_leave_for_inactive_employee(client, auth_headers, make_employee, add_attendance):
    inactive = make_employee(status=EmployeeStatus.INACTIVE)
    add_attendance(inactive.id, date(2024, 1, 3))
    response = apply_leave(client, auth_headers, inactive.id, "2024-01-10", "2024-01-12")
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "employee_inactive"


def test_leave_for_unknown_employee(client, auth_headers):
    response = apply_leave(client, auth_headers, 777, "2024-01-10", "2024-01-12")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_leave_with_reversed_range(client, auth_headers, eligible_employee):
    response = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-12", "2024-01-10")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "invalid_range"


def test_leave_longer_than_cap_rejected(client, auth_headers, eligible_employee, db):
    response = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2025-01-10")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "leave_span_too_long"
    assert db.query(LeaveDayClaim).count() == 0

    # A full leap year is still accepted
    response = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2025-01-09")
    assert response.status_code == status.HTTP_201_CREATED


def test_leave_span_cap_is_configurable(db, hr_user, eligible_employee, clock, monkeypatch):
    monkeypatch.setattr(settings, "MAX_LEAVE_SPAN_DAYS", 5)
    with pytest.raises(ValidationError, match="at most 5 days"):
        leave_service.create_leave(
            db, eligible_employee.id, date(2024, 1, 10), date(2024, 1, 15),
            reason="Trip", leave_type=LeaveType.ANNUAL, actor_id=hr_user.id, clock=clock,
        )

    leave = leave_service.create_leave(
        db, eligible_employee.id, date(2024, 1, 10), date(2024, 1, 14),
        reason="Trip", leave_type=LeaveType.ANNUAL, actor_id=hr_user.id, clock=clock,
    )
    assert leave.status == LeaveStatus.PENDING


def test_leave_with_unknown_type(client, auth_headers, eligible_employee):
    response = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2024-01-12", "vacation")
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_leave_with_blank_reason(db, hr_user, eligible_employee, clock):
    with pytest.raises(ValidationError):
        leave_service.create_leave(
            db, eligible_employee.id, date(2024, 1, 10), date(2024, 1, 12),
            reason="   ", leave_type=LeaveType.SICK, actor_id=hr_user.id, clock=clock,
        )


def test_day_claims_block_overlap_without_precheck(db, hr_user, eligible_employee, clock, monkeypatch):
    """A concurrent writer that passed the overlap query still loses on the claim constraint"""
    leave_service.create_leave(
        db, eligible_employee.id, date(2024, 1, 10), date(2024, 1, 12),
        reason="First", leave_type=LeaveType.CASUAL, actor_id=hr_user.id, clock=clock,
    )

    real_find = leave_service.find_overlapping_leave
    calls = {"n": 0}

    def racing_find(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_find(*args, **kwargs)

    monkeypatch.setattr(leave_service, "find_overlapping_leave", racing_find)

    with pytest.raises(OverlappingLeave):
        leave_service.create_leave(
            db, eligible_employee.id, date(2024, 1, 12), date(2024, 1, 14),
            reason="Second", leave_type=LeaveType.SICK, actor_id=hr_user.id, clock=clock,
        )
    assert db.query(LeaveRequest).count() == 1


def test_claim_table_enforces_one_leave_per_day(db, hr_user, eligible_employee, clock):
    first = LeaveRequest(
        employee_id=eligible_employee.id, start_day=date(2024, 1, 10), end_day=date(2024, 1, 10),
        reason="a", leave_type=LeaveType.OTHER, status=LeaveStatus.PENDING,
        created_by=hr_user.id, created_at=clock.now(),
    )
    first.day_claims = [LeaveDayClaim(employee_id=eligible_employee.id, day=date(2024, 1, 10))]
    db.add(first)
    db.commit()

    second = LeaveRequest(
        employee_id=eligible_employee.id, start_day=date(2024, 1, 10), end_day=date(2024, 1, 10),
        reason="b", leave_type=LeaveType.OTHER, status=LeaveStatus.PENDING,
        created_by=hr_user.id, created_at=clock.now(),
    )
    second.day_claims = [LeaveDayClaim(employee_id=eligible_employee.id, day=date(2024, 1, 10))]
    db.add(second)
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_delete_leave_releases_days(client, auth_headers, eligible_employee, db):
    first = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2024-01-12").json()
    response = client.delete(f"/api/v1/leaves/{first['id']}", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Leave removed"
    assert db.query(LeaveDayClaim).count() == 0

    assert client.get(f"/api/v1/leaves/{first['id']}", headers=auth_headers).status_code == 404
    assert apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2024-01-12").status_code == 201


def test_list_leaves_filters(client, auth_headers, eligible_employee, make_employee, add_attendance, clock):
    other = make_employee(name="Bob Other")
    add_attendance(other.id, date(2024, 1, 2))

    a = apply_leave(client, auth_headers, eligible_employee.id, "2024-01-10", "2024-01-12", "casual").json()
    b = apply_leave(client, auth_headers, eligible_employee.id, "2024-02-01", "2024-02-02", "sick").json()
    c = apply_leave(client, auth_headers, other.id, "2024-01-08", "2024-01-09", "annual").json()
    client.put(f"/api/v1/leaves/{c['id']}", json={"status": "rejected"}, headers=auth_headers)

    everything = client.get("/api/v1/leaves", headers=auth_headers).json()
    assert everything["total"] == 3

    mine = client.get(f"/api/v1/leaves?employee={eligible_employee.id}", headers=auth_headers).json()
    assert {item["id"] for item in mine["items"]} == {a["id"], b["id"]}

    rejected = client.get("/api/v1/leaves?status=rejected", headers=auth_headers).json()
    assert [item["id"] for item in rejected["items"]] == [c["id"]]

    sick = client.get("/api/v1/leaves?type=sick", headers=auth_headers).json()
    assert [item["id"] for item in sick["items"]] == [b["id"]]

    # Window keeps leaves overlapping it, not only those starting inside it
    window = client.get(
        "/api/v1/leaves?startDate=2024-01-11&endDate=2024-01-31", headers=auth_headers
    ).json()
    assert [item["id"] for item in window["items"]] == [a["id"]]

    by_start = client.get("/api/v1/leaves?sort=startDate", headers=auth_headers).json()
    assert [item["id"] for item in by_start["items"]] == [c["id"], a["id"], b["id"]]


def test_list_leaves_invalid_window(client, auth_headers):
    response = client.get("/api/v1/leaves?startDate=2024-02-01&endDate=2024-01-01", headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "invalid_range"


def test_list_leaves_unknown_sort(client, auth_headers):
    response = client.get("/api/v1/leaves?sort=reason", headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "validation_error"
