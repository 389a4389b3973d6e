# app/services/reminder_service.py

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Forbidden, NotFoundOrInaccessible
from app.core.principal import Principal, RequestContext
from app.core.roles import ADMIN_ROLES, AUTHORIZATION_DENIALS, Role, authz
from app.core.visibility import Action, ResourceType, policy
from app.models.enums import AuditAction, ReminderStatus
from app.models.reminder import Reminder
from app.models.task import Task
from app.models.types import utcnow
from app.schemas.audit import AuditLogCreate
from app.schemas.reminder import ReminderCreate, ReminderUpdate
from app.services.audit_service import audit_logger, snapshot
from app.services.repository import ResourceRepository

reminders = ResourceRepository(Reminder)
tasks = ResourceRepository(Task)


async def _ensure_task_linkable(session: AsyncSession, principal: Principal, task_id: Optional[str]):
    """A reminder may only point at a task the caller works on or manages."""
    if not task_id:
        return

    task = await tasks.get(session, task_id)
    if not task or not policy.can_view(principal, ResourceType.Task, task):
        raise NotFoundOrInaccessible("Task not found")

    linkable = (
        principal.id in (task.assigned_to, task.created_by)
        or authz.has_minimum_role(principal.role, ADMIN_ROLES)
        or (
            principal.role == Role.Manager
            and principal.department_id is not None
            and task.department_id == principal.department_id
        )
    )
    if not linkable:
        AUTHORIZATION_DENIALS.labels(resource=ResourceType.Reminder.value, action="link_task").inc()
        raise Forbidden("Cannot create reminders for this task")


async def list_reminders(
    session: AsyncSession,
    principal: Principal,
    status: Optional[str] = None,
    task_id: Optional[str] = None,
    department_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Reminder]:
    scope = policy.visibility_filter(principal, ResourceType.Reminder, department_id)
    return await reminders.select(
        session,
        scope,
        {"status": status, "task_id": task_id},
        limit=limit,
        offset=offset,
        order_by=Reminder.scheduled_for.asc(),
    )


async def get_reminder(session: AsyncSession, principal: Principal, reminder_id: str) -> Reminder:
    scope = policy.scope_filter(principal, ResourceType.Reminder)
    row = await reminders.get(session, reminder_id, scope=scope)
    if not row:
        raise NotFoundOrInaccessible("Reminder not found")
    return row


async def create_reminder(session: AsyncSession, context: RequestContext, data: ReminderCreate) -> Reminder:
    principal = context.principal
    await _ensure_task_linkable(session, principal, data.task_id)

    row = Reminder(
        **data.model_dump(),
        user_id=principal.id,
        department_id=principal.department_id,
    )
    await reminders.insert(session, row)
    await session.commit()
    await session.refresh(row)

    await audit_logger.record(
        AuditLogCreate(
            table_name=ResourceType.Reminder.value,
            record_id=row.id,
            action=AuditAction.Insert,
            new_values=snapshot(row, "title", "task_id", "scheduled_for"),
        ),
        context,
    )
    return row


async def _get_for_mutation(session: AsyncSession, principal: Principal, reminder_id: str) -> Reminder:
    row = await reminders.get(session, reminder_id)
    if not row or not policy.can_view(principal, ResourceType.Reminder, row):
        raise NotFoundOrInaccessible("Reminder not found")
    return row


async def update_reminder(
    session: AsyncSession,
    context: RequestContext,
    reminder_id: str,
    data: ReminderUpdate,
) -> Reminder:
    principal = context.principal
    current = await _get_for_mutation(session, principal, reminder_id)
    policy.ensure_can_mutate(principal, ResourceType.Reminder, current, Action.Update, "Cannot update this reminder")

    changes = data.model_dump(exclude_unset=True)
    if changes.get("task_id") and changes["task_id"] != current.task_id:
        await _ensure_task_linkable(session, principal, changes["task_id"])
    if changes.get("status") is not None:
        changes["status"] = changes["status"].value
    policy.ensure_can_set_status(
        principal, ResourceType.Reminder, current, changes.get("status"), "Cannot cancel this reminder"
    )

    before = snapshot(current, *changes.keys())
    changes["updated_at"] = utcnow()

    await reminders.update_fields(session, current, changes)
    await session.commit()
    await session.refresh(current)

    await audit_logger.record(
        AuditLogCreate(
            table_name=ResourceType.Reminder.value,
            record_id=current.id,
            action=AuditAction.Update,
            old_values=before,
            new_values=data.model_dump(exclude_unset=True, mode="json"),
        ),
        context,
    )
    return current


async def cancel_reminder(session: AsyncSession, context: RequestContext, reminder_id: str) -> None:
    principal = context.principal
    current = await _get_for_mutation(session, principal, reminder_id)
    policy.ensure_can_mutate(principal, ResourceType.Reminder, current, Action.Delete, "Cannot delete this reminder")

    previous_status = current.status
    await reminders.update_fields(
        session, current, {"status": ReminderStatus.Cancelled.value, "updated_at": utcnow()}
    )
    await session.commit()

    await audit_logger.record(
        AuditLogCreate(
            table_name=ResourceType.Reminder.value,
            record_id=current.id,
            action=AuditAction.Delete,
            old_values={"status": previous_status},
            new_values={"status": ReminderStatus.Cancelled.value},
        ),
        context,
    )
