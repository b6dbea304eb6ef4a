# backend/ems/api/endpoints/users.py

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ems.api.deps import get_current_user, require_admin
from ems.core.errors import ForbiddenError, ValidationError
from ems.core.security import create_access_token, verify_password
from ems.crud import users as users_crud
from ems.models.user import UserInDB
from ems.schemas.task import UserTasksRead
from ems.schemas.user import AuthResponse, UserLogin, UserProfile, UserRead, UserRegister, UserUpdate
from ems.services import tasks as task_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _to_user_read(user: UserInDB) -> UserRead:
    return UserRead(**user.model_dump(by_alias=False, exclude={"password_hash"}))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserRegister):
    user = await users_crud.create_user(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password=payload.password,
        role=payload.role,
    )
    logger.info("Registered user %s (%s)", user.id, user.role.value)
    return AuthResponse(
        message="User registered successfully",
        token=create_access_token(user.id, user.role.value),
        user=_to_user_read(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(payload: UserLogin):
    user = await users_crud.get_user_by_email(payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise ValidationError("Invalid credentials")
    return AuthResponse(
        message="Login successful",
        token=create_access_token(user.id, user.role.value),
        user=_to_user_read(user),
    )


@router.get("/me", response_model=UserProfile)
async def read_my_profile(user: UserInDB = Depends(get_current_user)):
    tasks, counts = await task_service.list_tasks_for_user(user.id)
    return UserProfile(**_to_user_read(user).model_dump(), tasks=tasks, task_counts=counts)


@router.get("/me/tasks", response_model=UserTasksRead)
async def read_my_tasks(user: UserInDB = Depends(get_current_user)):
    tasks, counts = await task_service.list_tasks_for_user(user.id)
    return UserTasksRead(
        user=user.full_name,
        task_counts=counts,
        tasks_count=len(tasks),
        tasks=tasks,
    )


@router.get("", response_model=List[UserRead])
async def read_users(admin: UserInDB = Depends(require_admin)):
    return [_to_user_read(u) for u in await users_crud.get_users()]


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    current: UserInDB = Depends(get_current_user),
):
    if current.id != user_id and not current.is_admin:
        raise ForbiddenError("Not authorized to update this user")
    if payload.role is not None and not current.is_admin:
        raise ForbiddenError("Not authorized to change role")

    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise ValidationError("No fields to update")

    user = await users_crud.update_user(user_id, changes)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return _to_user_read(user)
