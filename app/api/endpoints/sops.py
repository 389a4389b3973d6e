# app/api/endpoints/sops.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_principal, get_db_session, get_request_context
from app.core.constants import get_department_name
from app.core.principal import Principal, RequestContext
from app.schemas.sop import SopCreate, SopRead, SopUpdate
from app.services import sop_service

router = APIRouter(prefix="/api/sops", tags=["SOPs"])


def _to_read(sop) -> SopRead:
    read = SopRead.model_validate(sop)
    read.department = get_department_name(sop.department_id)
    return read


@router.get("/", response_model=List[SopRead])
async def list_sops(
    department: Optional[str] = Query(None, description="Department name or id; 'all' for no filter"),
    status: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    rows = await sop_service.list_sops(
        session, principal, department=department, status=status, limit=limit, offset=offset
    )
    return [_to_read(row) for row in rows]


@router.post("/", response_model=SopRead, status_code=status.HTTP_201_CREATED)
async def create_sop(
    data: SopCreate,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return _to_read(await sop_service.create_sop(session, context, data))


@router.get("/{sop_id}", response_model=SopRead)
async def get_sop(
    sop_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return _to_read(await sop_service.get_sop(session, principal, sop_id))


@router.put("/{sop_id}", response_model=SopRead)
async def update_sop(
    sop_id: str,
    data: SopUpdate,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return _to_read(await sop_service.update_sop(session, context, sop_id, data))


@router.delete("/{sop_id}")
async def archive_sop(
    sop_id: str,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    await sop_service.archive_sop(session, context, sop_id)
    return {"detail": "SOP archived"}
