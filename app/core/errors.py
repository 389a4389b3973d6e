# app/core/errors.py

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger


class AccessError(Exception):
    """Base for every failure the core reports back to a caller."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad Request"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(AccessError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad Request"


class Unauthenticated(AccessError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(AccessError):
    # human-readable reason only, never row data
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundOrInaccessible(AccessError):
    # same answer whether the row is absent or outside the caller's scope
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not Found"


class BatchPartiallyUnauthorized(Forbidden):
    def __init__(self, unauthorized_count: int, noun: str = "item"):
        self.unauthorized_count = unauthorized_count
        super().__init__(
            f"Not authorized to modify {unauthorized_count} {noun}(s); no changes were applied"
        )


class BatchRejected(AccessError):
    """A business-state guard blocked the whole batch."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Batch rejected"


class AuditWriteFailure(Exception):
    """Raised inside the audit logger only; never escapes to callers."""


async def access_error_handler(request: Request, exc: AccessError):
    if exc.status_code == status.HTTP_403_FORBIDDEN:
        logger.warning(f"Denied {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
