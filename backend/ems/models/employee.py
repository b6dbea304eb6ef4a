# 파일 위치: backend/ems/models/employee.py
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on leave"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EmployeeInDB(BaseModel):
    """
    'employees' 컬렉션의 인사 기록. user_id가 있으면 로그인 계정(User)과 연결된다.
    """
    id: str = Field(..., alias="_id")
    first_name: str
    last_name: str
    email: EmailStr
    position: str
    department: str
    salary: float
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    hire_date: datetime = Field(default_factory=_now)
    phone_number: Optional[str] = None
    address: Optional[str] = None
    user_id: Optional[str] = None

    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    model_config = ConfigDict(populate_by_name=True)
