from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.enums import ReminderStatus


class ReminderCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    message: Optional[str] = None
    task_id: Optional[str] = None
    reminder_type: str = "task"
    scheduled_for: datetime
    repeat_pattern: Optional[str] = None


class ReminderUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    message: Optional[str] = None
    task_id: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    repeat_pattern: Optional[str] = None
    status: Optional[ReminderStatus] = None


class ReminderRead(BaseModel):
    id: str
    title: str
    message: Optional[str] = None
    user_id: str
    task_id: Optional[str] = None
    department_id: Optional[str] = None
    reminder_type: str
    scheduled_for: datetime
    repeat_pattern: Optional[str] = None
    status: str

    class Config:
        from_attributes = True
