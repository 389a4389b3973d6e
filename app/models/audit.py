#app/models/audit.py

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime
from typing import Optional, Dict, Any
from datetime import datetime

from app.models.types import JSONType, new_id, utcnow


class AuditLog(SQLModel, table=True):
    """
    Append-only. Rows are inserted by the audit service and never
    updated or deleted by the application.
    """
    __tablename__ = "audit_logs"

    id: str = Field(default_factory=new_id, primary_key=True)

    table_name: str = Field(index=True)
    record_id: str = Field(index=True)
    action: str  # INSERT / UPDATE / DELETE

    # before/after snapshots
    old_values: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONType, nullable=True))
    new_values: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONType, nullable=True))

    # "system" for non-interactive actors, never a foreign key
    user_id: Optional[str] = Field(default=None, index=True)

    # Security context
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    # Stores {"sensitive_action": "...", "metadata": {...}}
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSONType))

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
