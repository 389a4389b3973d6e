from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.models.enums import ClockSessionStatus


class ClockInRequest(BaseModel):
    task_id: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class ClockSessionUpdate(BaseModel):
    # setting clock_out closes the session; only admins choose the timestamp
    clock_out: Optional[datetime] = None
    break_minutes: Optional[int] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[ClockSessionStatus] = None


class ClockSessionRead(BaseModel):
    id: str
    user_id: str
    task_id: Optional[str] = None
    department_id: Optional[str] = None
    clock_in: datetime
    clock_out: Optional[datetime] = None
    break_minutes: int
    total_seconds: Optional[int] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    status: str

    class Config:
        from_attributes = True
