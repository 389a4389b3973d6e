# app/models/clock_session.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional

from app.models.enums import ClockSessionStatus
from app.models.types import new_id, utcnow


class ClockSession(SQLModel, table=True):
    __tablename__ = "clock_sessions"

    id: str = Field(default_factory=new_id, primary_key=True)

    user_id: str = Field(foreign_key="users.id", index=True)
    task_id: Optional[str] = Field(default=None, foreign_key="tasks.id", index=True)
    # department of the user at clock-in time
    department_id: Optional[str] = Field(default=None, foreign_key="departments.id", index=True)

    clock_in: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    clock_out: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    break_minutes: int = Field(default=0)
    total_seconds: Optional[int] = None

    location: Optional[str] = None
    notes: Optional[str] = None
    status: str = Field(default=ClockSessionStatus.Active.value, index=True)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
