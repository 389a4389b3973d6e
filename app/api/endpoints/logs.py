# app/api/endpoints/logs.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db_session
from app.core.principal import Principal
from app.core.rbac import require_admin
from app.schemas.audit import AuditLogPage
from app.services.audit_service import list_audit_logs

router = APIRouter(prefix="/api/admin", tags=["Audit & Logs"])


# -------------------------------------------------------------------
# VIEW AUDIT TRAIL (Admin and God only)
# -------------------------------------------------------------------
@router.get("/audit-logs", response_model=AuditLogPage)
async def get_audit_logs(
    table_name: Optional[str] = Query(None, description="Filter by resource table"),
    record_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, description="Actor id, or 'system'"),
    action: Optional[str] = Query(None, description="INSERT / UPDATE / DELETE"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
):
    rows, total = await list_audit_logs(
        session,
        table_name=table_name,
        record_id=record_id,
        user_id=user_id,
        action=action,
        limit=limit,
        offset=offset,
    )
    return {"data": rows, "total": total, "limit": limit, "offset": offset}
