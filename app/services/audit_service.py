# app/services/audit_service.py

from enum import Enum
from typing import Optional, Dict, Any, List, Tuple

from fastapi.encoders import jsonable_encoder
from loguru import logger
from prometheus_client import Counter
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import SYSTEM_USER_ID
from app.core.database import AsyncSessionLocal
from app.core.errors import AuditWriteFailure
from app.core.principal import RequestContext
from app.models.audit import AuditLog
from app.models.enums import AuditAction
from app.schemas.audit import AuditLogCreate
from app.services.repository import ResourceRepository


class SensitiveAction(str, Enum):
    UserRoleChange = "user_role_change"
    UserDepartmentChange = "user_department_change"
    TaskAssignment = "task_assignment"
    TaskCompletion = "task_completion"
    SopCreation = "sop_creation"
    SopUpdate = "sop_update"
    ClockIn = "clock_in"
    ClockOut = "clock_out"
    FeedbackCreation = "feedback_creation"
    BulkDelete = "bulk_delete"
    BulkUpdate = "bulk_update"


AUDIT_WRITE_FAILURES = Counter(
    "audit_write_failures_total",
    "Audit entries that could not be persisted",
    ["table_name"],
)


def snapshot(row, *fields: str) -> Dict[str, Any]:
    """JSON-safe copy of a model row, optionally restricted to `fields`."""
    data = row.model_dump() if hasattr(row, "model_dump") else dict(row)
    if fields:
        data = {k: data.get(k) for k in fields}
    return jsonable_encoder(data)


class AuditLogger:
    """
    Sole writer of the audit_logs table.

    Every write happens in its own session after the business mutation
    has committed. A failed write is logged and counted, and the caller
    gets False back; nothing is raised and the mutation stays.
    """

    def __init__(self, session_factory=AsyncSessionLocal):
        self.session_factory = session_factory

    async def record(self, entry: AuditLogCreate, context: Optional[RequestContext] = None) -> bool:
        user_id = entry.user_id or (context.user_id if context else None)
        if user_id is None:
            # an interactive mutation without an actor is a bug, not a system action
            logger.warning(
                f"Audit entry for {entry.table_name}/{entry.record_id} has no actor"
            )

        log_entry = AuditLog(
            table_name=entry.table_name,
            record_id=str(entry.record_id),
            action=entry.action.value,
            old_values=jsonable_encoder(entry.old_values) if entry.old_values is not None else None,
            new_values=jsonable_encoder(entry.new_values) if entry.new_values is not None else None,
            user_id=user_id,
            ip_address=entry.ip_address or (context.ip_address if context else None),
            user_agent=entry.user_agent or (context.user_agent if context else None),
            details=jsonable_encoder(entry.details or {}),
        )

        try:
            async with self.session_factory() as session:
                try:
                    session.add(log_entry)
                    await session.commit()
                except Exception as e:
                    # keep the connection pool healthy
                    await session.rollback()
                    raise AuditWriteFailure(str(e)) from e
        except Exception as e:
            AUDIT_WRITE_FAILURES.labels(table_name=entry.table_name).inc()
            logger.opt(exception=e).error(
                f"AUDIT LOG ERROR: failed to persist {entry.action.value} "
                f"{entry.table_name}/{entry.record_id}"
            )
            return False

        return True

    async def record_sensitive(
        self,
        action: SensitiveAction,
        context: Optional[RequestContext],
        table_name: str,
        record_id: str,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        # sensitive actions share the one audit table, tagged through details
        entry = AuditLogCreate(
            table_name=table_name,
            record_id=str(record_id),
            action=AuditAction.Update,
            old_values=old_values,
            new_values=new_values,
            details={"sensitive_action": action.value, "metadata": metadata or {}},
        )
        return await self.record(entry, context)

    async def record_system(
        self,
        action: str,
        table_name: str,
        record_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        entry = AuditLogCreate(
            table_name=table_name,
            record_id=str(record_id),
            action=AuditAction.Update,
            user_id=SYSTEM_USER_ID,
            details={"system_action": action, "metadata": metadata or {}},
        )
        return await self.record(entry)


audit_logger = AuditLogger()


# ----------------------------------------------------------------
# READ (admin log viewer)
# ----------------------------------------------------------------
audit_logs = ResourceRepository(AuditLog)


async def list_audit_logs(
    session: AsyncSession,
    table_name: Optional[str] = None,
    record_id: Optional[str] = None,
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> Tuple[List[AuditLog], int]:
    criteria = {
        "table_name": table_name,
        "record_id": record_id,
        "user_id": user_id,
        "action": action.upper() if action else None,
    }
    rows = await audit_logs.select(session, criteria=criteria, limit=limit, offset=offset)
    total = await audit_logs.count(session, criteria=criteria)
    return rows, total
