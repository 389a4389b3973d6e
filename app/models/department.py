from sqlmodel import SQLModel, Field
from sqlalchemy import Column, String
from typing import Optional

from app.models.types import new_id


class Department(SQLModel, table=True):
    __tablename__ = "departments"

    id: str = Field(default_factory=new_id, primary_key=True)

    name: str = Field(
        sa_column=Column(String(128), nullable=False, unique=True)
    )

    description: Optional[str] = None
    manager_id: Optional[str] = None
