# 파일 위치: backend/ems/models/task.py

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(str, Enum):
    NEW = "new"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def _missing_(cls, value):
        # older clients send the progress state under several spellings
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", " ").replace("-", " ")
            if normalized in ("in progress", "active"):
                return cls.ACTIVE
            for member in cls:
                if member.value == normalized:
                    return member
        return None


# status -> boolean flag name exposed to clients
STATUS_FLAGS = {
    TaskStatus.NEW: "new_task",
    TaskStatus.ACTIVE: "active",
    TaskStatus.COMPLETED: "completed",
    TaskStatus.FAILED: "failed",
}


def status_flags(status: TaskStatus) -> Dict[str, bool]:
    """
    Boolean view of a status. Exactly one flag is True.
    """
    status = TaskStatus(status)
    return {flag: member == status for member, flag in STATUS_FLAGS.items()}


def resolve_status(record: Mapping[str, Any]) -> Optional[TaskStatus]:
    """
    Status of a task dict. Uses the `status` field when it parses, else
    falls back to whichever boolean flag is set (legacy cached records).
    """
    raw = record.get("status")
    if raw is not None:
        try:
            return TaskStatus(raw)
        except ValueError:
            pass
    for member, flag in STATUS_FLAGS.items():
        if record.get(flag) or (flag == "new_task" and record.get("newTask")):
            return member
    return None


def empty_task_counts() -> Dict[str, int]:
    return {flag: 0 for flag in STATUS_FLAGS.values()}


def count_tasks(tasks: Iterable[Any]) -> Dict[str, int]:
    """
    Per-status counters recomputed from the given task set.
    Accepts TaskStatus values, pydantic models with `.status`, or dicts.
    """
    counts = empty_task_counts()
    for task in tasks:
        if isinstance(task, str):
            status = TaskStatus(task)
        elif isinstance(task, Mapping):
            status = resolve_status(task)
        else:
            status = TaskStatus(task.status)
        if status is not None:
            counts[STATUS_FLAGS[status]] += 1
    return counts


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TaskInDB(BaseModel):
    """
    MongoDB 'tasks' 컬렉션에 저장되는 문서.
    상태는 status 하나로만 저장하고, boolean 플래그는 응답 시점에 계산한다.
    """
    id: str = Field(..., alias="_id")
    title: str
    description: str
    due_date: datetime
    category: str
    assignee_id: str
    status: TaskStatus = TaskStatus.NEW
    version: int = 1
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    model_config = ConfigDict(populate_by_name=True)
