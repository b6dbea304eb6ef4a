# 파일 위치: backend/ems/models/user.py
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserRole(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserInDB(BaseModel):
    """
    MongoDB 'users' 컬렉션에 저장되는 사용자 문서.
    task_counts는 저장하지 않는다. 조회할 때마다 tasks 컬렉션에서 다시 계산한다.
    """
    id: str = Field(..., alias="_id")
    first_name: str
    last_name: str
    email: EmailStr
    password_hash: str
    role: UserRole = UserRole.EMPLOYEE

    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    model_config = ConfigDict(populate_by_name=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
