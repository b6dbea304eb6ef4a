# backend/ems/api/endpoints/employees.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ems.api.deps import get_current_user, require_admin
from ems.crud import employees as employee_crud
from ems.models.user import UserInDB
from ems.realtime.hub import EMPLOYEE_CREATED, EMPLOYEE_DELETED, EMPLOYEE_UPDATED, hub
from ems.schemas.common import MessageResponse
from ems.schemas.employee import EmployeeRead, EmployeeWrite

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["Employees"])


@router.get("", response_model=List[EmployeeRead])
async def read_employees(user: UserInDB = Depends(get_current_user)):
    return await employee_crud.get_employees()


@router.get("/{employee_id}", response_model=EmployeeRead)
async def read_employee(employee_id: str, user: UserInDB = Depends(get_current_user)):
    employee = await employee_crud.get_employee(employee_id)
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


@router.post("", response_model=EmployeeRead, status_code=status.HTTP_201_CREATED)
async def create_employee(payload: EmployeeWrite, admin: UserInDB = Depends(require_admin)):
    employee = await employee_crud.create_employee(payload)
    logger.info("Employee %s created by %s", employee.id, admin.id)
    await hub.broadcast(EMPLOYEE_CREATED, employee.model_dump(mode="json"))
    return employee


@router.put("/{employee_id}", response_model=EmployeeRead)
async def update_employee(
    employee_id: str,
    payload: EmployeeWrite,
    admin: UserInDB = Depends(require_admin),
):
    employee = await employee_crud.update_employee(employee_id, payload)
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")
    await hub.broadcast(EMPLOYEE_UPDATED, employee.model_dump(mode="json"))
    return employee


@router.delete("/{employee_id}", response_model=MessageResponse)
async def delete_employee(employee_id: str, admin: UserInDB = Depends(require_admin)):
    deleted = await employee_crud.delete_employee(employee_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Employee not found")
    logger.info("Employee %s deleted by %s", employee_id, admin.id)
    await hub.broadcast(EMPLOYEE_DELETED, {"id": employee_id})
    return MessageResponse(message="Employee deleted successfully")
