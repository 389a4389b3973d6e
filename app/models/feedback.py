# app/models/feedback.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import DateTime, Text
from datetime import datetime
from typing import Optional

from app.models.enums import FeedbackStatus
from app.models.types import new_id, utcnow


class Feedback(SQLModel, table=True):
    __tablename__ = "feedback"

    id: str = Field(default_factory=new_id, primary_key=True)

    type: str = Field(default="task")
    subject: str = Field(nullable=False)
    content: str = Field(sa_column=Column(Text, nullable=False))
    rating: Optional[int] = None

    # author and (optionally) the person the feedback is about
    user_id: str = Field(foreign_key="users.id", index=True)
    target_user_id: Optional[str] = Field(default=None, foreign_key="users.id", index=True)

    task_id: Optional[str] = Field(default=None, foreign_key="tasks.id", index=True)
    department_id: Optional[str] = Field(default=None, foreign_key="departments.id", index=True)

    status: str = Field(default=FeedbackStatus.Open.value, index=True)
    priority: str = Field(default="medium")

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
