from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.enums import SopStatus


class SopCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    description: Optional[str] = None
    # either a department id or one of the known department names
    department: Optional[str] = None
    department_id: Optional[str] = None
    status: SopStatus = SopStatus.Draft
    tags: List[str] = []


class SopUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = None
    description: Optional[str] = None
    status: Optional[SopStatus] = None
    tags: Optional[List[str]] = None


class SopRead(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    content: str
    version: int
    status: str
    department_id: Optional[str] = None
    department: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    tags: List[str] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
