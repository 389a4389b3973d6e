# app/api/endpoints/feedback.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_principal, get_db_session, get_request_context
from app.core.principal import Principal, RequestContext
from app.schemas.feedback import FeedbackCreate, FeedbackRead, FeedbackUpdate
from app.services import feedback_service

router = APIRouter(prefix="/api/feedback", tags=["Feedback"])


@router.get("/", response_model=List[FeedbackRead])
async def list_feedback(
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    department_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return await feedback_service.list_feedback(
        session, principal,
        status=status,
        type=type,
        department_id=department_id,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=FeedbackRead, status_code=status.HTTP_201_CREATED)
async def create_feedback(
    data: FeedbackCreate,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return await feedback_service.create_feedback(session, context, data)


@router.get("/{feedback_id}", response_model=FeedbackRead)
async def get_feedback(
    feedback_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return await feedback_service.get_feedback(session, principal, feedback_id)


@router.put("/{feedback_id}", response_model=FeedbackRead)
async def update_feedback(
    feedback_id: str,
    data: FeedbackUpdate,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return await feedback_service.update_feedback(session, context, feedback_id, data)


@router.delete("/{feedback_id}")
async def close_feedback(
    feedback_id: str,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    await feedback_service.close_feedback(session, context, feedback_id)
    return {"detail": "Feedback closed"}
