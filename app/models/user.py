# app/models/user.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import DateTime, String
from datetime import datetime
from typing import Optional

from app.core.roles import Role
from app.models.enums import UserStatus
from app.models.types import new_id, utcnow


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)

    full_name: str = Field(nullable=False)
    email: str = Field(nullable=False, index=True, unique=True)

    # stored as plain text; anything outside the Role enum resolves to Guest
    role: str = Field(
        default=Role.User.value,
        sa_column=Column(String(32), nullable=False, index=True)
    )

    department_id: Optional[str] = Field(default=None, foreign_key="departments.id", index=True)

    status: str = Field(default=UserStatus.Active.value, index=True)
    phone: Optional[str] = None

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
