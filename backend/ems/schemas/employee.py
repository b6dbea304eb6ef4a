# backend/ems/schemas/employee.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, ValidationInfo, field_validator

from ems.models.employee import EmployeeStatus
from ems.schemas.common import _strip_and_reject_blank, _strip_to_none


class EmployeeWrite(BaseModel):
    """
    [요청] POST /employees, PUT /employees/{employee_id}
    생성과 수정 모두 필수 필드 전체를 요구한다.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str
    last_name: str
    email: EmailStr
    position: str
    department: str
    salary: float
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    hire_date: Optional[datetime] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator("first_name", "last_name", "position", "department")
    @classmethod
    def reject_blank(cls, v: str, info: ValidationInfo) -> str:
        return _strip_and_reject_blank(v, info.field_name)

    @field_validator("phone_number", "address", "user_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_to_none(v)

    @field_validator("salary")
    @classmethod
    def salary_not_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("salary must not be negative")
        return v


class EmployeeRead(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: EmailStr
    position: str
    department: str
    salary: float
    status: EmployeeStatus
    hire_date: datetime
    phone_number: Optional[str] = None
    address: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
