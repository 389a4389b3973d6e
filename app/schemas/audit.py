from pydantic import BaseModel
from typing import Optional, Dict, Any, List
from datetime import datetime

from app.models.enums import AuditAction


class AuditLogCreate(BaseModel):
    """What a caller hands to the audit logger."""
    table_name: str
    record_id: str
    action: AuditAction
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    user_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    details: Dict[str, Any] = {}


class AuditLogRead(BaseModel):
    id: str
    table_name: str
    record_id: str
    action: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    user_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    details: Dict[str, Any] = {}
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogPage(BaseModel):
    data: List[AuditLogRead]
    total: int
    limit: int
    offset: int
