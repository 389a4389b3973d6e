# app/api/endpoints/reminders.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_principal, get_db_session, get_request_context
from app.core.principal import Principal, RequestContext
from app.schemas.reminder import ReminderCreate, ReminderRead, ReminderUpdate
from app.services import reminder_service

router = APIRouter(prefix="/api/reminders", tags=["Reminders"])


@router.get("/", response_model=List[ReminderRead])
async def list_reminders(
    status: Optional[str] = Query(None),
    task_id: Optional[str] = Query(None),
    department_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return await reminder_service.list_reminders(
        session, principal,
        status=status,
        task_id=task_id,
        department_id=department_id,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=ReminderRead, status_code=status.HTTP_201_CREATED)
async def create_reminder(
    data: ReminderCreate,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return await reminder_service.create_reminder(session, context, data)


@router.get("/{reminder_id}", response_model=ReminderRead)
async def get_reminder(
    reminder_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return await reminder_service.get_reminder(session, principal, reminder_id)


@router.put("/{reminder_id}", response_model=ReminderRead)
async def update_reminder(
    reminder_id: str,
    data: ReminderUpdate,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return await reminder_service.update_reminder(session, context, reminder_id, data)


@router.delete("/{reminder_id}")
async def cancel_reminder(
    reminder_id: str,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    await reminder_service.cancel_reminder(session, context, reminder_id)
    return {"detail": "Reminder cancelled"}
