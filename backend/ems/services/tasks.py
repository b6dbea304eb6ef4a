# backend/ems/services/tasks.py
"""
Task Store: task persistence plus the sync events every write must emit.
Routers call these functions rather than ems.crud.tasks directly.
"""
import logging
from typing import List, Optional, Tuple

from ems.core.errors import NotFoundError, ValidationError
from ems.crud import tasks as task_crud
from ems.crud import users as users_crud
from ems.models.task import count_tasks
from ems.realtime.hub import hub
from ems.schemas.task import TaskCounts, TaskCreate, TaskRead, TaskUpdate

logger = logging.getLogger(__name__)


def _event_payload(task: TaskRead) -> dict:
    return task.model_dump(mode="json")


async def create_task(data: TaskCreate, created_by: Optional[str] = None) -> TaskRead:
    if await users_crud.get_user_by_id(data.assignee_id) is None:
        raise ValidationError("Assignee does not exist")

    task = await task_crud.create_task(data, created_by=created_by)
    logger.info("Task %s created for %s", task.id, task.assignee_id)

    await hub.task_assigned(_event_payload(task), task.assignee_id)
    return task


async def update_task(task_id: str, patch: TaskUpdate) -> TaskRead:
    if patch.assignee_id is not None and await users_crud.get_user_by_id(patch.assignee_id) is None:
        raise ValidationError("Assignee does not exist")

    task = await task_crud.update_task(task_id, patch)
    logger.info("Task %s updated to %s (version %d)", task.id, task.status.value, task.version)

    await hub.task_updated(_event_payload(task))
    return task


async def get_task(task_id: str) -> TaskRead:
    task = await task_crud.get_task(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


async def list_tasks() -> List[TaskRead]:
    return await task_crud.get_tasks()


async def list_tasks_for_user(user_id: str) -> Tuple[List[TaskRead], TaskCounts]:
    """
    Tasks assigned to the user and counters derived from exactly that set.
    """
    tasks = await task_crud.get_tasks_for_user(user_id)
    return tasks, TaskCounts(**count_tasks(tasks))
