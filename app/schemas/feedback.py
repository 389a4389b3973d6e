from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.enums import FeedbackStatus


class FeedbackCreate(BaseModel):
    type: str = "task"
    subject: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    task_id: Optional[str] = None
    target_user_id: Optional[str] = None
    priority: str = "medium"


class FeedbackUpdate(BaseModel):
    subject: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    status: Optional[FeedbackStatus] = None
    priority: Optional[str] = None


class FeedbackRead(BaseModel):
    id: str
    type: str
    subject: str
    content: str
    rating: Optional[int] = None
    user_id: str
    target_user_id: Optional[str] = None
    task_id: Optional[str] = None
    department_id: Optional[str] = None
    status: str
    priority: str
    created_at: datetime

    class Config:
        from_attributes = True
