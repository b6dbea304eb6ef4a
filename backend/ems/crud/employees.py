# backend/ems/crud/employees.py
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from ems.core.errors import DuplicateError, ValidationError
from ems.crud import users as users_crud
from ems.db.mongo import get_db, storage_errors
from ems.models.employee import EmployeeInDB
from ems.schemas.employee import EmployeeRead, EmployeeWrite


def get_employees_collection():
    return get_db()["employees"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def serialize_employee(doc) -> EmployeeRead:
    employee = EmployeeInDB(**doc)
    return EmployeeRead(**employee.model_dump(by_alias=False))


async def _ensure_unique_email(email: str, exclude_id: Optional[str] = None) -> None:
    with storage_errors("check employee email"):
        existing = await get_employees_collection().find_one({"email": email})
    if existing is not None and existing["_id"] != exclude_id:
        raise DuplicateError("Employee with this email already exists")


async def _ensure_user_exists(user_id: Optional[str]) -> None:
    if user_id is None:
        return
    if await users_crud.get_user_by_id(user_id) is None:
        raise ValidationError("Linked user does not exist")


def _to_document(data: EmployeeWrite) -> dict:
    fields = data.model_dump(exclude_none=True)
    fields["email"] = fields["email"].lower()
    fields["status"] = data.status.value
    return fields


# CREATE
async def create_employee(data: EmployeeWrite) -> EmployeeRead:
    fields = _to_document(data)
    await _ensure_unique_email(fields["email"])
    await _ensure_user_exists(data.user_id)

    now = _now()
    doc = {
        "_id": str(uuid.uuid4()),
        "hire_date": now,
        **fields,
        "created_at": now,
        "updated_at": now,
    }
    with storage_errors("create employee"):
        await get_employees_collection().insert_one(doc)
    return serialize_employee(doc)


# READ ALL
async def get_employees() -> List[EmployeeRead]:
    with storage_errors("list employees"):
        cursor = get_employees_collection().find({})
        return [serialize_employee(doc) async for doc in cursor]


# READ ONE
async def get_employee(employee_id: str) -> Optional[EmployeeRead]:
    with storage_errors("load employee"):
        doc = await get_employees_collection().find_one({"_id": employee_id})
    return serialize_employee(doc) if doc else None


# UPDATE
async def update_employee(employee_id: str, data: EmployeeWrite) -> Optional[EmployeeRead]:
    fields = _to_document(data)
    await _ensure_unique_email(fields["email"], exclude_id=employee_id)
    await _ensure_user_exists(data.user_id)

    fields["updated_at"] = _now()
    with storage_errors("update employee"):
        result = await get_employees_collection().update_one(
            {"_id": employee_id},
            {"$set": fields},
        )
    if result.matched_count == 0:
        return None
    return await get_employee(employee_id)


# DELETE
async def delete_employee(employee_id: str) -> bool:
    with storage_errors("delete employee"):
        result = await get_employees_collection().delete_one({"_id": employee_id})
    return result.deleted_count == 1
