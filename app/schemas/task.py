from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.enums import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    department_id: Optional[str] = None
    sop_id: Optional[str] = None
    priority: TaskPriority = TaskPriority.Medium
    status: TaskStatus = TaskStatus.Pending
    due_date: Optional[datetime] = None
    estimated_duration: Optional[str] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    estimated_duration: Optional[str] = None
    actual_duration: Optional[str] = None
    completion_notes: Optional[str] = None


class TaskRead(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    assigned_to: Optional[str] = None
    created_by: Optional[str] = None
    department_id: Optional[str] = None
    sop_id: Optional[str] = None
    due_date: Optional[datetime] = None
    estimated_duration: Optional[str] = None
    actual_duration: Optional[str] = None
    completion_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BulkTaskRequest(BaseModel):
    task_ids: List[str]


class BulkCompleteResponse(BaseModel):
    updated_count: int
    tasks: List[TaskRead]


class BulkDeleteResponse(BaseModel):
    deleted_count: int
