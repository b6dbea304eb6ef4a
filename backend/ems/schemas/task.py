# 파일 위치: backend/ems/schemas/task.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ems.models.task import TaskStatus
from ems.schemas.common import _strip_and_reject_blank


# --- API 요청(Request) 스키마 ---
class TaskCreate(BaseModel):
    """
    [요청] POST /tasks
    관리자가 새 업무를 만들어 assignee_id의 사용자에게 배정한다.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str
    description: str
    due_date: datetime
    category: str
    assignee_id: str
    status: TaskStatus = TaskStatus.NEW

    @field_validator("title", "description", "category", "assignee_id")
    @classmethod
    def reject_blank(cls, v: str, info: ValidationInfo) -> str:
        return _strip_and_reject_blank(v, info.field_name)


class TaskUpdate(BaseModel):
    """
    [요청] PUT /tasks/{task_id}
    모든 필드는 선택 사항. expected_version을 보내면 저장된 version과 다를 때 409로 거절된다.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    category: Optional[str] = None
    assignee_id: Optional[str] = None
    status: Optional[TaskStatus] = None
    expected_version: Optional[int] = Field(default=None, ge=1)

    @field_validator("title", "description", "category", "assignee_id")
    @classmethod
    def reject_blank(cls, v, info: ValidationInfo):
        return _strip_and_reject_blank(v, info.field_name)

    def changes(self) -> dict:
        return {
            k: v
            for k, v in self.model_dump(exclude={"expected_version"}).items()
            if v is not None
        }


# --- API 응답(Response) 스키마 ---
class TaskCounts(BaseModel):
    new_task: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0


class TaskRead(BaseModel):
    """
    [응답] 저장된 업무. new_task/active/completed/failed 플래그는 status에서 계산된 값이다.
    """
    id: str
    title: str
    description: str
    due_date: datetime
    category: str
    assignee_id: str
    status: TaskStatus
    new_task: bool
    active: bool
    completed: bool
    failed: bool
    version: int
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserTasksRead(BaseModel):
    """
    [응답] GET /users/me/tasks
    """
    user: str
    task_counts: TaskCounts
    tasks_count: int
    tasks: List[TaskRead]
