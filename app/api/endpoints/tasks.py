# app/api/endpoints/tasks.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_principal, get_db_session, get_request_context
from app.core.principal import Principal, RequestContext
from app.schemas.task import (
    BulkCompleteResponse,
    BulkDeleteResponse,
    BulkTaskRequest,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)
from app.services import task_service

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


# -------------------------------------------------------------------
# LIST / COUNT
# -------------------------------------------------------------------
@router.get("/", response_model=List[TaskRead])
async def list_tasks(
    department_id: Optional[str] = Query(None, description="Department id or name; 'all' for no filter"),
    assigned_to: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return await task_service.list_tasks(
        session, principal,
        department_id=department_id,
        assigned_to=assigned_to,
        status=status,
        priority=priority,
        limit=limit,
        offset=offset,
    )


@router.get("/count")
async def count_tasks(
    department_id: Optional[str] = Query(None),
    assigned_to: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    total = await task_service.count_tasks(
        session, principal,
        department_id=department_id,
        assigned_to=assigned_to,
        status=status,
        priority=priority,
    )
    return {"count": total}


# -------------------------------------------------------------------
# BULK (all-or-nothing)
# -------------------------------------------------------------------
@router.post("/bulk-complete", response_model=BulkCompleteResponse)
async def bulk_complete(
    data: BulkTaskRequest,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    rows = await task_service.bulk_complete_tasks(session, context, data.task_ids)
    return {"updated_count": len(rows), "tasks": rows}


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete(
    data: BulkTaskRequest,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    deleted = await task_service.bulk_delete_tasks(session, context, data.task_ids)
    return {"deleted_count": deleted}


# -------------------------------------------------------------------
# SINGLE TASK
# -------------------------------------------------------------------
@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return await task_service.create_task(session, context, data)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return await task_service.get_task(session, principal, task_id)


@router.put("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: str,
    data: TaskUpdate,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return await task_service.update_task(session, context, task_id, data)


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    await task_service.delete_task(session, context, task_id)
    return {"detail": "Task cancelled"}
