# app/services/task_service.py

from typing import List, Optional
from uuid import uuid4

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Forbidden, InvalidRequest, NotFoundOrInaccessible
from app.core.principal import Principal, RequestContext
from app.core.roles import ADMIN_ROLES, AUTHORIZATION_DENIALS, MANAGER_ROLES, Role, authz
from app.core.visibility import Action, ResourceType, policy
from app.models.enums import AuditAction, TaskStatus
from app.models.task import Task
from app.models.types import utcnow
from app.schemas.audit import AuditLogCreate
from app.schemas.task import TaskCreate, TaskUpdate
from app.services.audit_service import SensitiveAction, audit_logger, snapshot
from app.services.bulk_service import StateGuard, bulk_validator, raise_for_decision
from app.services.repository import ResourceRepository
from app.services.user_service import get_user_by_id

tasks = ResourceRepository(Task)

VALID_STATUSES = {s.value for s in TaskStatus}


def _check_status(status: Optional[str]):
    if status and status not in VALID_STATUSES:
        raise InvalidRequest("Invalid status parameter")


async def _ensure_assignable(session: AsyncSession, principal: Principal, assignee_id: Optional[str]):
    """Reassignment needs Manager+; a Manager may only hand tasks to their own department."""
    if not authz.has_minimum_role(principal.role, MANAGER_ROLES):
        AUTHORIZATION_DENIALS.labels(resource=ResourceType.Task.value, action="assign").inc()
        raise Forbidden("Cannot reassign tasks")

    if assignee_id is None:
        return

    assignee = await get_user_by_id(session, assignee_id)
    if not assignee:
        raise NotFoundOrInaccessible("Assignee not found")

    if not policy.can_assign_to(principal, assignee.department_id):
        AUTHORIZATION_DENIALS.labels(resource=ResourceType.Task.value, action="assign").inc()
        raise Forbidden("Can only assign tasks to users in your department")


# ===================================================================
# READ
# ===================================================================
async def list_tasks(
    session: AsyncSession,
    principal: Principal,
    department_id: Optional[str] = None,
    assigned_to: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Task]:
    _check_status(status)
    scope = policy.visibility_filter(principal, ResourceType.Task, department_id)
    criteria = {"assigned_to": assigned_to, "status": status, "priority": priority}
    return await tasks.select(session, scope, criteria, limit=limit, offset=offset)


async def count_tasks(
    session: AsyncSession,
    principal: Principal,
    department_id: Optional[str] = None,
    assigned_to: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
) -> int:
    _check_status(status)
    scope = policy.visibility_filter(principal, ResourceType.Task, department_id)
    criteria = {"assigned_to": assigned_to, "status": status, "priority": priority}
    return await tasks.count(session, scope, criteria)


async def get_task(session: AsyncSession, principal: Principal, task_id: str) -> Task:
    scope = policy.scope_filter(principal, ResourceType.Task)
    task = await tasks.get(session, task_id, scope=scope)
    if not task:
        raise NotFoundOrInaccessible("Task not found")
    return task


async def _get_for_mutation(session: AsyncSession, principal: Principal, task_id: str) -> Task:
    # authorization runs against the stored row; rows outside read scope look absent
    task = await tasks.get(session, task_id)
    if not task or not policy.can_view(principal, ResourceType.Task, task):
        raise NotFoundOrInaccessible("Task not found")
    return task


# ===================================================================
# CREATE
# ===================================================================
async def create_task(session: AsyncSession, context: RequestContext, data: TaskCreate) -> Task:
    principal = context.principal

    if not authz.has_minimum_role(principal.role, {Role.User}):
        AUTHORIZATION_DENIALS.labels(resource=ResourceType.Task.value, action="create").inc()
        raise Forbidden("Insufficient permissions to create tasks")

    department_id = data.department_id or principal.department_id
    if (
        data.department_id
        and data.department_id != principal.department_id
        and not authz.has_minimum_role(principal.role, ADMIN_ROLES)
    ):
        AUTHORIZATION_DENIALS.labels(resource=ResourceType.Task.value, action="create").inc()
        raise Forbidden("Can only create tasks in your department")

    if data.assigned_to and data.assigned_to != principal.id:
        await _ensure_assignable(session, principal, data.assigned_to)

    task = Task(
        **data.model_dump(exclude={"department_id", "status", "priority"}),
        status=data.status.value,
        priority=data.priority.value,
        department_id=department_id,
        created_by=principal.id,
    )
    if task.status == TaskStatus.Completed.value:
        task.completed_at = utcnow()

    await tasks.insert(session, task)
    await session.commit()
    await session.refresh(task)

    if task.assigned_to:
        await audit_logger.record_sensitive(
            SensitiveAction.TaskAssignment,
            context,
            table_name=ResourceType.Task.value,
            record_id=task.id,
            new_values={"assigned_to": task.assigned_to},
            metadata={"action": "task_created_and_assigned"},
        )
    return task


# ===================================================================
# UPDATE
# ===================================================================
async def update_task(
    session: AsyncSession,
    context: RequestContext,
    task_id: str,
    data: TaskUpdate,
) -> Task:
    principal = context.principal
    current = await _get_for_mutation(session, principal, task_id)
    policy.ensure_can_mutate(principal, ResourceType.Task, current, Action.Update, "Cannot update this task")

    changes = data.model_dump(exclude_unset=True)
    for key in ("status", "priority"):
        if changes.get(key) is not None:
            changes[key] = changes[key].value
    policy.ensure_can_set_status(
        principal, ResourceType.Task, current, changes.get("status"), "Cannot cancel this task"
    )

    previous_assignee = current.assigned_to
    previous_status = current.status

    reassigned = "assigned_to" in changes and changes["assigned_to"] != previous_assignee
    if reassigned:
        await _ensure_assignable(session, principal, changes["assigned_to"])

    completing = (
        changes.get("status") == TaskStatus.Completed.value
        and previous_status != TaskStatus.Completed.value
    )
    if completing:
        # actual_duration is not derived from clock sessions here
        changes["completed_at"] = utcnow()
    elif changes.get("status") and changes["status"] != TaskStatus.Completed.value:
        changes["completed_at"] = None

    changes["updated_at"] = utcnow()

    try:
        await tasks.update_fields(session, current, changes)
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception(f"Task update failed for {task_id}")
        raise

    await session.refresh(current)

    if reassigned:
        await audit_logger.record_sensitive(
            SensitiveAction.TaskAssignment,
            context,
            table_name=ResourceType.Task.value,
            record_id=current.id,
            old_values={"assigned_to": previous_assignee},
            new_values={"assigned_to": current.assigned_to},
        )

    if completing:
        await audit_logger.record_sensitive(
            SensitiveAction.TaskCompletion,
            context,
            table_name=ResourceType.Task.value,
            record_id=current.id,
            old_values={"status": previous_status},
            new_values=snapshot(current, "status", "completed_at"),
        )

    return current


# ===================================================================
# DELETE (soft: status -> cancelled)
# ===================================================================
async def delete_task(session: AsyncSession, context: RequestContext, task_id: str) -> None:
    principal = context.principal
    current = await _get_for_mutation(session, principal, task_id)
    policy.ensure_can_mutate(principal, ResourceType.Task, current, Action.Delete, "Cannot delete this task")

    previous_status = current.status
    await tasks.update_fields(
        session, current, {"status": TaskStatus.Cancelled.value, "updated_at": utcnow()}
    )
    await session.commit()

    await audit_logger.record(
        AuditLogCreate(
            table_name=ResourceType.Task.value,
            record_id=current.id,
            action=AuditAction.Delete,
            old_values={"status": previous_status},
            new_values={"status": TaskStatus.Cancelled.value},
        ),
        context,
    )


# ===================================================================
# BULK
# ===================================================================
ALREADY_COMPLETED = StateGuard(
    blocks=lambda task: task.status == TaskStatus.Completed.value,
    describe=lambda n: f"Cannot complete {n} task(s): already completed",
)


async def bulk_complete_tasks(
    session: AsyncSession,
    context: RequestContext,
    task_ids: List[str],
) -> List[Task]:
    principal = context.principal
    decision = await bulk_validator.validate(
        session, principal, ResourceType.Task, tasks, task_ids,
        action=Action.Update, guard=ALREADY_COMPLETED,
    )
    rows = raise_for_decision(decision, noun="task")
    previous = {row.id: row.status for row in rows}

    now = utcnow()
    try:
        await tasks.update_many(
            session,
            task_ids,
            {"status": TaskStatus.Completed.value, "completed_at": now, "updated_at": now},
        )
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Bulk complete failed; no tasks were changed")
        raise

    for row in rows:
        await session.refresh(row)

    await audit_logger.record_sensitive(
        SensitiveAction.BulkUpdate,
        context,
        table_name=ResourceType.Task.value,
        record_id=str(uuid4()),
        old_values={"status": previous},
        new_values={"status": TaskStatus.Completed.value},
        metadata={"operation": "complete", "task_ids": list(task_ids), "count": len(rows)},
    )
    return rows


async def bulk_delete_tasks(
    session: AsyncSession,
    context: RequestContext,
    task_ids: List[str],
) -> int:
    principal = context.principal
    decision = await bulk_validator.validate(
        session, principal, ResourceType.Task, tasks, task_ids, action=Action.Delete,
    )
    rows = raise_for_decision(decision, noun="task")
    before = {row.id: snapshot(row, "status", "assigned_to", "department_id") for row in rows}

    try:
        deleted = await tasks.delete_many(session, task_ids)
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Bulk delete failed; no tasks were removed")
        raise

    await audit_logger.record_sensitive(
        SensitiveAction.BulkDelete,
        context,
        table_name=ResourceType.Task.value,
        record_id=str(uuid4()),
        old_values=before,
        metadata={"operation": "delete", "task_ids": list(task_ids), "count": deleted},
    )
    return deleted
