# app/api/deps.py

from typing import AsyncGenerator, Optional
import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.security import decode_token
from app.core.database import get_session
from app.core.errors import Unauthenticated
from app.core.principal import Principal, RequestContext
from app.models.enums import UserStatus
from app.models.user import User


# ------------------------------------------------------------
# HTTP Bearer Authentication
# ------------------------------------------------------------
bearer_scheme = HTTPBearer(auto_error=False)


# ------------------------------------------------------------
# DB Session
# ------------------------------------------------------------
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


# ------------------------------------------------------------
# Resolve the Principal from the bearer token
# ------------------------------------------------------------
async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db_session),
) -> Principal:

    if credentials is None:
        raise Unauthenticated("Authentication required")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.InvalidTokenError:
        raise Unauthenticated("Could not validate credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise Unauthenticated("Invalid token payload")

    result = await session.execute(select(User).where(User.id == str(user_id)))
    user = result.scalar_one_or_none()

    if not user or user.status == UserStatus.Deleted.value:
        logger.info(f"Token subject {user_id} has no active user record")
        raise Unauthenticated("User not found")

    return Principal.from_user(user)


# ------------------------------------------------------------
# Client details for audit entries
# ------------------------------------------------------------
def get_real_ip(request: Request) -> Optional[str]:
    """
    Checks X-Forwarded-For (Vercel/Nginx) and X-Real-IP (Cloudflare)
    before the socket peer.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # leftmost entry is the actual client
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else None


async def get_request_context(
    request: Request,
    principal: Principal = Depends(get_current_principal),
) -> RequestContext:
    return RequestContext(
        principal=principal,
        ip_address=get_real_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
