# backend/ems/crud/tasks.py
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pymongo import ReturnDocument

from ems.core.errors import NotFoundError, VersionConflictError
from ems.db.mongo import get_db, storage_errors
from ems.models.task import TaskInDB, status_flags
from ems.schemas.task import TaskCreate, TaskRead, TaskUpdate


def get_tasks_collection():
    return get_db()["tasks"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def serialize_task(doc) -> TaskRead:
    task = TaskInDB(**doc)
    return TaskRead(
        id=task.id,
        title=task.title,
        description=task.description,
        due_date=task.due_date,
        category=task.category,
        assignee_id=task.assignee_id,
        status=task.status,
        **status_flags(task.status),
        version=task.version,
        created_by=task.created_by,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


# CREATE
async def create_task(task_data: TaskCreate, created_by: Optional[str] = None) -> TaskRead:
    now = _now()
    new_task = TaskInDB(
        id=str(uuid.uuid4()),
        **task_data.model_dump(),
        version=1,
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )
    doc = new_task.model_dump(by_alias=True, mode="python")
    doc["status"] = new_task.status.value

    with storage_errors("create task"):
        await get_tasks_collection().insert_one(doc)
    return serialize_task(doc)


# READ ALL
async def get_tasks() -> List[TaskRead]:
    with storage_errors("list tasks"):
        cursor = get_tasks_collection().find({})
        return [serialize_task(doc) async for doc in cursor]


async def get_tasks_for_user(user_id: str) -> List[TaskRead]:
    with storage_errors("list tasks"):
        cursor = get_tasks_collection().find({"assignee_id": user_id})
        return [serialize_task(doc) async for doc in cursor]


# READ ONE
async def get_task(task_id: str) -> Optional[TaskRead]:
    with storage_errors("load task"):
        doc = await get_tasks_collection().find_one({"_id": task_id})
    return serialize_task(doc) if doc else None


# UPDATE
async def update_task(task_id: str, task_data: TaskUpdate) -> TaskRead:
    """
    One atomic document update. status is the only stored state field,
    so the derived flags can never disagree with it.
    - expected_version 지정 시: version이 같을 때만 반영, 다르면 VersionConflictError
    - 미지정 시: last-write-wins
    """
    update_fields = task_data.changes()
    if "status" in update_fields:
        update_fields["status"] = update_fields["status"].value
    update_fields["updated_at"] = _now()

    query = {"_id": task_id}
    if task_data.expected_version is not None:
        query["version"] = task_data.expected_version

    collection = get_tasks_collection()
    current = None
    with storage_errors("update task"):
        updated = await collection.find_one_and_update(
            query,
            {"$set": update_fields, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            current = await collection.find_one({"_id": task_id})

    if updated is not None:
        return serialize_task(updated)
    if current is None:
        raise NotFoundError("Task not found")
    raise VersionConflictError(
        f"Task was modified concurrently (expected version {task_data.expected_version}, "
        f"current version {current.get('version', 1)})"
    )
