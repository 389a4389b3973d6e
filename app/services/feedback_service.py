# app/services/feedback_service.py

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundOrInaccessible
from app.core.principal import Principal, RequestContext
from app.core.visibility import Action, ResourceType, policy
from app.models.enums import AuditAction, FeedbackStatus
from app.models.feedback import Feedback
from app.models.task import Task
from app.models.types import utcnow
from app.schemas.audit import AuditLogCreate
from app.schemas.feedback import FeedbackCreate, FeedbackUpdate
from app.services.audit_service import SensitiveAction, audit_logger, snapshot
from app.services.repository import ResourceRepository
from app.services.user_service import get_user_by_id

feedback = ResourceRepository(Feedback)
tasks = ResourceRepository(Task)


async def list_feedback(
    session: AsyncSession,
    principal: Principal,
    status: Optional[str] = None,
    type: Optional[str] = None,
    department_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Feedback]:
    scope = policy.visibility_filter(principal, ResourceType.Feedback, department_id)
    return await feedback.select(session, scope, {"status": status, "type": type}, limit=limit, offset=offset)


async def get_feedback(session: AsyncSession, principal: Principal, feedback_id: str) -> Feedback:
    scope = policy.scope_filter(principal, ResourceType.Feedback)
    row = await feedback.get(session, feedback_id, scope=scope)
    if not row:
        raise NotFoundOrInaccessible("Feedback not found")
    return row


async def create_feedback(session: AsyncSession, context: RequestContext, data: FeedbackCreate) -> Feedback:
    principal = context.principal

    if data.task_id:
        task = await tasks.get(session, data.task_id)
        if not task or not policy.can_view(principal, ResourceType.Task, task):
            raise NotFoundOrInaccessible("Task not found")

    if data.target_user_id and not await get_user_by_id(session, data.target_user_id):
        raise NotFoundOrInaccessible("Target user not found")

    row = Feedback(
        **data.model_dump(),
        user_id=principal.id,
        department_id=principal.department_id,
    )
    await feedback.insert(session, row)
    await session.commit()
    await session.refresh(row)

    await audit_logger.record_sensitive(
        SensitiveAction.FeedbackCreation,
        context,
        table_name=ResourceType.Feedback.value,
        record_id=row.id,
        new_values=snapshot(row, "type", "subject", "rating", "target_user_id", "task_id"),
    )
    return row


async def _get_for_mutation(session: AsyncSession, principal: Principal, feedback_id: str) -> Feedback:
    row = await feedback.get(session, feedback_id)
    if not row or not policy.can_view(principal, ResourceType.Feedback, row):
        raise NotFoundOrInaccessible("Feedback not found")
    return row


async def update_feedback(
    session: AsyncSession,
    context: RequestContext,
    feedback_id: str,
    data: FeedbackUpdate,
) -> Feedback:
    principal = context.principal
    current = await _get_for_mutation(session, principal, feedback_id)
    policy.ensure_can_mutate(principal, ResourceType.Feedback, current, Action.Update, "Cannot update this feedback")

    changes = data.model_dump(exclude_unset=True)
    if changes.get("status") is not None:
        changes["status"] = changes["status"].value
    policy.ensure_can_set_status(
        principal, ResourceType.Feedback, current, changes.get("status"), "Cannot close this feedback"
    )

    before = snapshot(current, *changes.keys())
    changes["updated_at"] = utcnow()

    await feedback.update_fields(session, current, changes)
    await session.commit()
    await session.refresh(current)

    await audit_logger.record(
        AuditLogCreate(
            table_name=ResourceType.Feedback.value,
            record_id=current.id,
            action=AuditAction.Update,
            old_values=before,
            new_values=data.model_dump(exclude_unset=True, mode="json"),
        ),
        context,
    )
    return current


async def close_feedback(session: AsyncSession, context: RequestContext, feedback_id: str) -> None:
    principal = context.principal
    current = await _get_for_mutation(session, principal, feedback_id)
    policy.ensure_can_mutate(principal, ResourceType.Feedback, current, Action.Delete, "Cannot delete this feedback")

    previous_status = current.status
    await feedback.update_fields(
        session, current, {"status": FeedbackStatus.Closed.value, "updated_at": utcnow()}
    )
    await session.commit()

    await audit_logger.record(
        AuditLogCreate(
            table_name=ResourceType.Feedback.value,
            record_id=current.id,
            action=AuditAction.Delete,
            old_values={"status": previous_status},
            new_values={"status": FeedbackStatus.Closed.value},
        ),
        context,
    )
