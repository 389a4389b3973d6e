# app/models/reminder.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional

from app.models.enums import ReminderStatus
from app.models.types import new_id, utcnow


class Reminder(SQLModel, table=True):
    __tablename__ = "reminders"

    id: str = Field(default_factory=new_id, primary_key=True)

    title: str = Field(nullable=False)
    message: Optional[str] = None

    user_id: str = Field(foreign_key="users.id", index=True)
    task_id: Optional[str] = Field(default=None, foreign_key="tasks.id", index=True)
    department_id: Optional[str] = Field(default=None, foreign_key="departments.id", index=True)

    reminder_type: str = Field(default="task")
    scheduled_for: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    repeat_pattern: Optional[str] = None
    status: str = Field(default=ReminderStatus.Pending.value, index=True)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
