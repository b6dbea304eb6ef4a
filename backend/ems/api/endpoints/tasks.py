# backend/ems/api/endpoints/tasks.py
from typing import List

from fastapi import APIRouter, Depends, status

from ems.api.deps import get_current_user, require_admin
from ems.core.errors import ForbiddenError
from ems.models.user import UserInDB
from ems.schemas.task import TaskCreate, TaskRead, TaskUpdate
from ems.services import tasks as task_service

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def _ensure_can_access(task: TaskRead, user: UserInDB) -> None:
    if not user.is_admin and task.assignee_id != user.id:
        raise ForbiddenError("Not authorized to access this task")


# CREATE
@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(task: TaskCreate, admin: UserInDB = Depends(require_admin)):
    return await task_service.create_task(task, created_by=admin.id)


# READ ALL
@router.get("", response_model=List[TaskRead])
async def read_tasks(user: UserInDB = Depends(get_current_user)):
    if user.is_admin:
        return await task_service.list_tasks()
    tasks, _ = await task_service.list_tasks_for_user(user.id)
    return tasks


# READ ONE
@router.get("/{task_id}", response_model=TaskRead)
async def read_task(task_id: str, user: UserInDB = Depends(get_current_user)):
    task = await task_service.get_task(task_id)
    _ensure_can_access(task, user)
    return task


# UPDATE
@router.put("/{task_id}", response_model=TaskRead)
async def update_task(task_id: str, patch: TaskUpdate, user: UserInDB = Depends(get_current_user)):
    current = await task_service.get_task(task_id)
    _ensure_can_access(current, user)
    if not user.is_admin and patch.assignee_id not in (None, user.id):
        raise ForbiddenError("Only an admin can reassign a task")
    return await task_service.update_task(task_id, patch)
