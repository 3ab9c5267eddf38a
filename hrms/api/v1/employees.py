"""
Employee endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hrms.core.deps import get_clock, get_current_user, get_db
from hrms.models.employee import EmployeeStatus
from hrms.models.user import User
from hrms.schemas.employee import EmployeeCreate, EmployeeOut, EmployeeUpdate
from hrms.services.employee_service import (
    create_employee,
    delete_employee,
    get_employee,
    list_employees,
    update_employee,
)
from hrms.utils.datetime_utils import Clock

router = APIRouter()


@router.get("", response_model=List[EmployeeOut])
async def list_employees_endpoint(
    status: Optional[EmployeeStatus] = Query(None, description="active or inactive"),
    department: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="name or department; newest first when omitted"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return list_employees(db, status=status, department=department, sort=sort)


@router.post("", response_model=EmployeeOut, status_code=201)
async def create_employee_endpoint(
    payload: EmployeeCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    return create_employee(db, payload, actor_id=current_user.id, clock=clock)


@router.get("/{employee_id}", response_model=EmployeeOut)
async def get_employee_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return get_employee(db, employee_id)


@router.put("/{employee_id}", response_model=EmployeeOut)
async def update_employee_endpoint(
    employee_id: int,
    payload: EmployeeUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """Update employee fields; setting status=inactive stops new attendance and leave"""
    return update_employee(db, employee_id, payload, actor_id=current_user.id, clock=clock)


@router.delete("/{employee_id}")
async def delete_employee_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """Remove an employee with no attendance or leave history"""
    delete_employee(db, employee_id, actor_id=current_user.id, clock=clock)
    return {"message": "Employee removed"}
