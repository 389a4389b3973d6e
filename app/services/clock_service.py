# app/services/clock_service.py

from typing import List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Forbidden, InvalidRequest, NotFoundOrInaccessible
from app.core.principal import Principal, RequestContext
from app.core.roles import ADMIN_ROLES, AUTHORIZATION_DENIALS, MANAGER_ROLES, Role, authz
from app.core.visibility import Action, ResourceType, policy
from app.models.clock_session import ClockSession
from app.models.enums import AuditAction, ClockSessionStatus
from app.models.task import Task
from app.models.types import utcnow
from app.schemas.audit import AuditLogCreate
from app.schemas.clock_session import ClockInRequest, ClockSessionUpdate
from app.services.audit_service import SensitiveAction, audit_logger
from app.services.repository import ResourceRepository

clock_sessions = ResourceRepository(ClockSession)
tasks = ResourceRepository(Task)


def _elapsed_seconds(session_row: ClockSession, clock_out) -> int:
    clock_in = session_row.clock_in
    # SQLite hands back naive datetimes
    if clock_in.tzinfo is None and clock_out.tzinfo is not None:
        clock_out = clock_out.replace(tzinfo=None)
    elif clock_in.tzinfo is not None and clock_out.tzinfo is None:
        clock_in = clock_in.replace(tzinfo=None)
    total = int((clock_out - clock_in).total_seconds()) - (session_row.break_minutes or 0) * 60
    return max(total, 0)


async def list_clock_sessions(
    session: AsyncSession,
    principal: Principal,
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    department_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[ClockSession]:
    scope = policy.visibility_filter(principal, ResourceType.ClockSession, department_id)
    # filtering by someone else is only meaningful for Manager and above
    if user_id and not authz.has_minimum_role(principal.role, MANAGER_ROLES):
        user_id = None
    criteria = {"user_id": user_id, "status": status}
    return await clock_sessions.select(
        session, scope, criteria, limit=limit, offset=offset, order_by=ClockSession.clock_in.desc()
    )


async def get_clock_session(session: AsyncSession, principal: Principal, session_id: str) -> ClockSession:
    scope = policy.scope_filter(principal, ResourceType.ClockSession)
    row = await clock_sessions.get(session, session_id, scope=scope)
    if not row:
        raise NotFoundOrInaccessible("Clock session not found")
    return row


async def get_active_session(session: AsyncSession, principal: Principal) -> Optional[ClockSession]:
    rows = await clock_sessions.select(
        session,
        criteria={"user_id": principal.id, "status": ClockSessionStatus.Active.value},
        limit=1,
    )
    return rows[0] if rows else None


async def clock_in(session: AsyncSession, context: RequestContext, data: ClockInRequest) -> ClockSession:
    principal = context.principal

    if await get_active_session(session, principal):
        raise InvalidRequest("Already clocked in")

    if data.task_id:
        task = await tasks.get(session, data.task_id)
        if not task or not policy.can_view(principal, ResourceType.Task, task):
            raise NotFoundOrInaccessible("Task not found")
        # time is clocked by the assignee or someone managing the task
        allowed = (
            task.assigned_to == principal.id
            or authz.has_minimum_role(principal.role, ADMIN_ROLES)
            or (
                principal.role == Role.Manager
                and principal.department_id is not None
                and task.department_id == principal.department_id
            )
        )
        if not allowed:
            AUTHORIZATION_DENIALS.labels(resource=ResourceType.ClockSession.value, action="clock_in").inc()
            raise Forbidden("Cannot clock in for this task")

    row = ClockSession(
        user_id=principal.id,
        department_id=principal.department_id,
        task_id=data.task_id,
        location=data.location,
        notes=data.notes,
        status=ClockSessionStatus.Active.value,
    )
    await clock_sessions.insert(session, row)
    await session.commit()
    await session.refresh(row)

    await audit_logger.record_sensitive(
        SensitiveAction.ClockIn,
        context,
        table_name=ResourceType.ClockSession.value,
        record_id=row.id,
        new_values={"user_id": principal.id, "task_id": row.task_id, "clock_in": row.clock_in},
    )
    return row


async def _get_for_mutation(session: AsyncSession, principal: Principal, session_id: str) -> ClockSession:
    row = await clock_sessions.get(session, session_id)
    if not row or not policy.can_view(principal, ResourceType.ClockSession, row):
        raise NotFoundOrInaccessible("Clock session not found")
    return row


async def update_clock_session(
    session: AsyncSession,
    context: RequestContext,
    session_id: str,
    data: ClockSessionUpdate,
) -> ClockSession:
    principal = context.principal
    current = await _get_for_mutation(session, principal, session_id)
    policy.ensure_can_mutate(
        principal, ResourceType.ClockSession, current, Action.Update, "Cannot modify this clock session"
    )

    changes = data.model_dump(exclude_unset=True)
    if changes.get("status") is not None:
        changes["status"] = changes["status"].value
    policy.ensure_can_set_status(
        principal, ResourceType.ClockSession, current, changes.get("status"),
        "Insufficient permissions to delete clock sessions",
    )

    if "clock_out" in changes and not authz.has_minimum_role(principal.role, ADMIN_ROLES):
        if current.clock_out is not None:
            AUTHORIZATION_DENIALS.labels(resource=ResourceType.ClockSession.value, action="clock_out").inc()
            raise Forbidden("Only administrators can adjust a recorded clock-out")
        if changes["clock_out"] is None:
            changes.pop("clock_out")
        else:
            # clock-out time is stamped by the server, not the caller
            changes["clock_out"] = utcnow()

    clocking_out = changes.get("clock_out") is not None and current.clock_out is None
    if clocking_out:
        if "break_minutes" in changes and changes["break_minutes"] is not None:
            current.break_minutes = changes["break_minutes"]
        changes["total_seconds"] = _elapsed_seconds(current, changes["clock_out"])
        changes["status"] = ClockSessionStatus.Completed.value

    previous_status = current.status
    changes["updated_at"] = utcnow()

    await clock_sessions.update_fields(session, current, changes)
    await session.commit()
    await session.refresh(current)

    if clocking_out:
        await audit_logger.record_sensitive(
            SensitiveAction.ClockOut,
            context,
            table_name=ResourceType.ClockSession.value,
            record_id=current.id,
            old_values={"status": previous_status},
            new_values={
                "status": current.status,
                "clock_out": current.clock_out,
                "total_seconds": current.total_seconds,
            },
        )
    return current


async def clock_out(session: AsyncSession, context: RequestContext) -> ClockSession:
    """Close the caller's own active session."""
    active = await get_active_session(session, context.principal)
    if not active:
        raise InvalidRequest("No active clock session")
    logger.debug(f"Clocking out session {active.id} for {context.principal.id}")
    return await update_clock_session(
        session, context, active.id, ClockSessionUpdate(clock_out=utcnow())
    )


async def cancel_clock_session(session: AsyncSession, context: RequestContext, session_id: str) -> None:
    principal = context.principal
    current = await _get_for_mutation(session, principal, session_id)
    policy.ensure_can_mutate(
        principal, ResourceType.ClockSession, current, Action.Delete,
        "Insufficient permissions to delete clock sessions",
    )

    previous_status = current.status
    await clock_sessions.update_fields(
        session, current, {"status": ClockSessionStatus.Cancelled.value, "updated_at": utcnow()}
    )
    await session.commit()

    await audit_logger.record(
        AuditLogCreate(
            table_name=ResourceType.ClockSession.value,
            record_id=current.id,
            action=AuditAction.Delete,
            old_values={"status": previous_status},
            new_values={"status": ClockSessionStatus.Cancelled.value},
        ),
        context,
    )
