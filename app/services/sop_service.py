# app/services/sop_service.py

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import get_department_id
from app.core.errors import Forbidden, InvalidRequest, NotFoundOrInaccessible
from app.core.principal import Principal, RequestContext
from app.core.roles import AUTHORIZATION_DENIALS, MANAGER_ROLES, Role, authz
from app.core.visibility import Action, ResourceType, policy
from app.models.enums import SopStatus
from app.models.sop import Sop
from app.models.types import utcnow
from app.schemas.sop import SopCreate, SopUpdate
from app.services.audit_service import SensitiveAction, audit_logger, snapshot
from app.services.repository import ResourceRepository

sops = ResourceRepository(Sop)


async def list_sops(
    session: AsyncSession,
    principal: Principal,
    department: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Sop]:
    if status and status not in {s.value for s in SopStatus}:
        raise InvalidRequest("Invalid status parameter")
    scope = policy.visibility_filter(principal, ResourceType.Sop, department)
    return await sops.select(session, scope, {"status": status}, limit=limit, offset=offset)


async def get_sop(session: AsyncSession, principal: Principal, sop_id: str) -> Sop:
    scope = policy.scope_filter(principal, ResourceType.Sop)
    sop = await sops.get(session, sop_id, scope=scope)
    if not sop:
        raise NotFoundOrInaccessible("SOP not found")
    return sop


async def create_sop(session: AsyncSession, context: RequestContext, data: SopCreate) -> Sop:
    principal = context.principal
    if not authz.has_minimum_role(principal.role, MANAGER_ROLES):
        AUTHORIZATION_DENIALS.labels(resource=ResourceType.Sop.value, action="create").inc()
        raise Forbidden("Insufficient permissions to create SOPs")

    department_id = data.department_id or get_department_id(data.department) or principal.department_id
    if principal.role == Role.Manager and department_id not in (None, principal.department_id):
        AUTHORIZATION_DENIALS.labels(resource=ResourceType.Sop.value, action="create").inc()
        raise Forbidden("Can only create SOPs in your department")

    sop = Sop(
        title=data.title,
        content=data.content,
        description=data.description,
        status=data.status.value,
        tags=data.tags,
        department_id=department_id,
        created_by=principal.id,
        updated_by=principal.id,
    )
    await sops.insert(session, sop)
    await session.commit()
    await session.refresh(sop)

    await audit_logger.record_sensitive(
        SensitiveAction.SopCreation,
        context,
        table_name=ResourceType.Sop.value,
        record_id=sop.id,
        new_values=snapshot(sop, "title", "status", "department_id", "version"),
    )
    return sop


async def _get_for_mutation(session: AsyncSession, principal: Principal, sop_id: str) -> Sop:
    sop = await sops.get(session, sop_id)
    if not sop or not policy.can_view(principal, ResourceType.Sop, sop):
        raise NotFoundOrInaccessible("SOP not found")
    return sop


async def update_sop(session: AsyncSession, context: RequestContext, sop_id: str, data: SopUpdate) -> Sop:
    principal = context.principal
    current = await _get_for_mutation(session, principal, sop_id)
    policy.ensure_can_mutate(principal, ResourceType.Sop, current, Action.Update, "Cannot update this SOP")

    before = snapshot(current)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("status") is not None:
        changes["status"] = changes["status"].value
    policy.ensure_can_set_status(
        principal, ResourceType.Sop, current, changes.get("status"), "Insufficient permissions to archive SOPs"
    )

    # content edits bump the version
    if changes.get("content") and changes["content"] != current.content:
        changes["version"] = (current.version or 1) + 1

    changes["updated_by"] = principal.id
    changes["updated_at"] = utcnow()

    await sops.update_fields(session, current, changes)
    await session.commit()
    await session.refresh(current)

    await audit_logger.record_sensitive(
        SensitiveAction.SopUpdate,
        context,
        table_name=ResourceType.Sop.value,
        record_id=current.id,
        old_values=before,
        new_values=data.model_dump(exclude_unset=True, mode="json"),
        metadata={
            "version_changed": current.version != before["version"],
            "status_changed": current.status != before["status"],
        },
    )
    return current


async def archive_sop(session: AsyncSession, context: RequestContext, sop_id: str) -> None:
    principal = context.principal
    current = await _get_for_mutation(session, principal, sop_id)
    policy.ensure_can_mutate(
        principal, ResourceType.Sop, current, Action.Delete, "Insufficient permissions to delete SOPs"
    )

    before = snapshot(current)
    await sops.update_fields(
        session,
        current,
        {"status": SopStatus.Archived.value, "updated_by": principal.id, "updated_at": utcnow()},
    )
    await session.commit()

    await audit_logger.record_sensitive(
        SensitiveAction.SopUpdate,
        context,
        table_name=ResourceType.Sop.value,
        record_id=current.id,
        old_values=before,
        new_values={"status": SopStatus.Archived.value},
        metadata={"action": "sop_archived"},
    )
