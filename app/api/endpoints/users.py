# app/api/endpoints/users.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_principal, get_db_session, get_request_context
from app.core.constants import get_department_name
from app.core.principal import Principal, RequestContext
from app.schemas.user import UserCreate, UserRead, UserUpdate
from app.services import user_service

router = APIRouter(prefix="/api/users", tags=["Users"])


def _to_read(user) -> UserRead:
    read = UserRead.model_validate(user)
    read.department_name = get_department_name(user.department_id)
    return read


# -------------------------------------------------------------------
# Current user
# -------------------------------------------------------------------
@router.get("/me", response_model=UserRead)
async def read_me(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return _to_read(await user_service.get_user(session, principal, principal.id))


# -------------------------------------------------------------------
# Directory (scoped by role)
# -------------------------------------------------------------------
@router.get("/", response_model=List[UserRead])
async def list_users(
    department_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    rows = await user_service.list_users(
        session, principal, department_id=department_id, limit=limit, offset=offset
    )
    return [_to_read(row) for row in rows]


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return _to_read(await user_service.create_user(session, context, data))


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    return _to_read(await user_service.get_user(session, principal, user_id))


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: str,
    data: UserUpdate,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    return _to_read(await user_service.update_user(session, context, user_id, data))


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    context: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    await user_service.delete_user(session, context, user_id)
    return {"detail": "User deleted"}
