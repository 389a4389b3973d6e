# app/models/sop.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import DateTime, Text
from datetime import datetime
from typing import List, Optional

from app.models.enums import SopStatus
from app.models.types import JSONType, new_id, utcnow


class Sop(SQLModel, table=True):
    __tablename__ = "sops"

    id: str = Field(default_factory=new_id, primary_key=True)

    title: str = Field(nullable=False)
    description: Optional[str] = None
    content: str = Field(sa_column=Column(Text, nullable=False))
    version: int = Field(default=1)

    status: str = Field(default=SopStatus.Draft.value, index=True)

    # NULL department means organization-wide
    department_id: Optional[str] = Field(default=None, foreign_key="departments.id", index=True)

    created_by: Optional[str] = Field(default=None, foreign_key="users.id", index=True)
    updated_by: Optional[str] = Field(default=None, foreign_key="users.id")

    tags: List[str] = Field(default_factory=list, sa_column=Column(JSONType))

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
