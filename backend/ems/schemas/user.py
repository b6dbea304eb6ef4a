# backend/ems/schemas/user.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator

from ems.models.user import UserRole
from ems.schemas.common import _strip_and_reject_blank
from ems.schemas.task import TaskCounts, TaskRead


class UserBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr

    # EmailStr도 "  a@b.com  " 같은 입력을 trim 후 검증되게 처리
    @field_validator("email", mode="before")
    @classmethod
    def validate_email_strip(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if v == "":
                raise ValueError("email must not be blank")
        return v


# ---------- 요청 스키마 ----------

class UserRegister(UserBase):
    """
    [요청] POST /users/register
    """
    first_name: str
    last_name: str
    password: str = Field(min_length=6)
    role: UserRole = UserRole.EMPLOYEE

    @field_validator("first_name", "last_name")
    @classmethod
    def reject_blank(cls, v: str, info: ValidationInfo) -> str:
        return _strip_and_reject_blank(v, info.field_name)


class UserLogin(UserBase):
    """
    [요청] POST /users/login
    """
    password: str


class UserUpdate(BaseModel):
    """
    [요청] PUT /users/{user_id}
    role 변경은 관리자만 가능하다.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[UserRole] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def reject_blank(cls, v, info: ValidationInfo):
        return _strip_and_reject_blank(v, info.field_name)


# ---------- 응답 스키마 ----------

class UserRead(UserBase):
    id: str
    first_name: str
    last_name: str
    role: UserRole
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserProfile(UserRead):
    """
    [응답] GET /users/me — 배정된 업무와 상태별 개수 포함
    """
    tasks: List[TaskRead] = Field(default_factory=list)
    task_counts: TaskCounts = Field(default_factory=TaskCounts)


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserRead
