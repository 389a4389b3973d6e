# app/api/endpoints/clock_sessions.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_principal, get_db_session, get_request_context
from app.core.principal import Principal, RequestContext
from app.schemas.clock_session import ClockInRequest, ClockSessionRead, ClockSessionUpdate
from app.services import clock_service

router = APIRouter(prefix="/api/clock-sessions", tags=["Clock Sessions"])


@router.get("/", response_model=List[ClockSessionRead])
async def list_clock_sessions(
    user_id: Optional[str] = Query(None, description="Manager and above only"),
    status: Optional[str] = Query(None),
    department_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return await clock_service.list_clock_sessions(
        session, principal,
        user_id=user_id,
        status=status,
        department_id=department_id,
        limit=limit,
        offset=offset,
    )


@router.get("/active", response_model=Optional[ClockSessionRead])
async def get_active_session(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return await clock_service.get_active_session(session, principal)


@router.post("/clock-in", response_model=ClockSessionRead, status_code=status.HTTP_201_CREATED)
async def clock_in(
    data: ClockInRequest,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return await clock_service.clock_in(session, context, data)


@router.post("/clock-out", response_model=ClockSessionRead)
async def clock_out(
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return await clock_service.clock_out(session, context)


@router.get("/{session_id}", response_model=ClockSessionRead)
async def get_clock_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return await clock_service.get_clock_session(session, principal, session_id)


@router.put("/{session_id}", response_model=ClockSessionRead)
async def update_clock_session(
    session_id: str,
    data: ClockSessionUpdate,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return await clock_service.update_clock_session(session, context, session_id, data)


@router.delete("/{session_id}")
async def cancel_clock_session(
    session_id: str,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    await clock_service.cancel_clock_session(session, context, session_id)
    return {"detail": "Clock session cancelled"}
