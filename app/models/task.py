# app/models/task.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import DateTime, Text
from datetime import datetime
from typing import Optional

from app.models.enums import TaskPriority, TaskStatus
from app.models.types import new_id, utcnow


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: str = Field(default_factory=new_id, primary_key=True)

    title: str = Field(nullable=False)
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    status: str = Field(default=TaskStatus.Pending.value, index=True)
    priority: str = Field(default=TaskPriority.Medium.value, index=True)

    # ownership
    assigned_to: Optional[str] = Field(default=None, foreign_key="users.id", index=True)
    created_by: Optional[str] = Field(default=None, foreign_key="users.id", index=True)

    department_id: Optional[str] = Field(default=None, foreign_key="departments.id", index=True)
    sop_id: Optional[str] = Field(default=None, foreign_key="sops.id")

    due_date: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    estimated_duration: Optional[str] = None
    # Not derived from clock sessions; set explicitly by the caller if at all
    actual_duration: Optional[str] = None
    completion_notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    completed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
