# app/services/user_service.py

from typing import List, Optional

from loguru import logger
from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from app.core.errors import Forbidden, InvalidRequest, NotFoundOrInaccessible
from app.core.principal import Principal, RequestContext
from app.core.roles import ADMIN_ROLES, AUTHORIZATION_DENIALS, MANAGER_ROLES, Role, authz, parse_role
from app.core.visibility import Action, ResourceType, policy
from app.models.enums import AuditAction, UserStatus
from app.models.types import utcnow
from app.models.user import User
from app.schemas.audit import AuditLogCreate
from app.schemas.user import UserCreate, UserUpdate
from app.services.audit_service import SensitiveAction, audit_logger, snapshot
from app.services.repository import ResourceRepository

users = ResourceRepository(User)


# ============================================================================
# LOOKUPS (unscoped, for internal checks only)
# ============================================================================
async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: str) -> User | None:
    result = await session.execute(select(User).where(User.id == str(user_id)))
    return result.scalar_one_or_none()


def _deny(message: str, action: str = "manage"):
    AUTHORIZATION_DENIALS.labels(resource=ResourceType.User.value, action=action).inc()
    raise Forbidden(message)


# ============================================================================
# READ
# ============================================================================
async def list_users(
    session: AsyncSession,
    principal: Principal,
    department_id: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[User]:
    scope = policy.visibility_filter(principal, ResourceType.User, department_id)
    return await users.select(session, scope, limit=limit, offset=offset)


async def get_user(session: AsyncSession, principal: Principal, user_id: str) -> User:
    scope = policy.scope_filter(principal, ResourceType.User)
    user = await users.get(session, user_id, scope=scope)
    if not user:
        raise NotFoundOrInaccessible("User not found")
    return user


# ============================================================================
# CREATE
# ============================================================================
async def create_user(session: AsyncSession, context: RequestContext, data: UserCreate) -> User:
    principal = context.principal

    if not authz.has_minimum_role(principal.role, MANAGER_ROLES):
        _deny("Insufficient permissions to create users", "create")

    if not authz.outranks(principal.role, data.role):
        _deny("Cannot assign a role equal to or higher than your own", "create")

    department_id = data.department_id
    if principal.role == Role.Manager:
        if department_id and department_id != principal.department_id:
            _deny("Can only create users in your department", "create")
        department_id = principal.department_id

    if await get_user_by_email(session, data.email):
        raise InvalidRequest("Email already registered")

    user = User(
        full_name=data.full_name,
        email=data.email,
        role=data.role.value,
        department_id=department_id,
        phone=data.phone,
    )

    try:
        await users.insert(session, user)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise InvalidRequest("User with this email already exists")

    await session.refresh(user)
    logger.info(f"User {user.id} created with role {user.role} by {principal.id}")

    await audit_logger.record_sensitive(
        SensitiveAction.UserRoleChange,
        context,
        table_name=ResourceType.User.value,
        record_id=user.id,
        new_values={"role": user.role, "department_id": user.department_id},
        metadata={"action": "user_created"},
    )
    return user


# ============================================================================
# UPDATE
# ============================================================================
async def update_user(
    session: AsyncSession,
    context: RequestContext,
    user_id: str,
    data: UserUpdate,
) -> User:
    principal = context.principal
    target = await get_user_by_id(session, user_id)

    if not target or not policy.can_view(principal, ResourceType.User, target):
        raise NotFoundOrInaccessible("User not found")

    policy.ensure_can_mutate(principal, ResourceType.User, target, Action.Update, "Cannot update this user")

    changes = data.model_dump(exclude_unset=True)
    current_role = parse_role(target.role)

    role_changed = "role" in changes and changes["role"] is not None and changes["role"] != current_role
    if role_changed:
        if not authz.has_minimum_role(principal.role, MANAGER_ROLES):
            _deny("Cannot change user roles", "role_change")
        if not authz.outranks(principal.role, changes["role"]) or not authz.outranks(principal.role, current_role):
            _deny("Cannot assign a role equal to or higher than your own", "role_change")
        changes["role"] = changes["role"].value
    else:
        changes.pop("role", None)

    department_changed = (
        "department_id" in changes
        and changes["department_id"] != target.department_id
    )
    if department_changed and not authz.has_minimum_role(principal.role, ADMIN_ROLES):
        _deny("Cannot change department assignments", "department_change")
    if not department_changed:
        changes.pop("department_id", None)

    if "status" in changes:
        if changes["status"] is None:
            changes.pop("status")
        elif not authz.outranks(principal.role, current_role):
            _deny("Cannot change the status of this user", "status_change")
        else:
            changes["status"] = changes["status"].value
    policy.ensure_can_set_status(
        principal, ResourceType.User, target, changes.get("status"), "Insufficient permissions to delete users"
    )

    old_role, old_department = target.role, target.department_id
    changes["updated_at"] = utcnow()

    await users.update_fields(session, target, changes)
    await session.commit()
    await session.refresh(target)

    if role_changed:
        await audit_logger.record_sensitive(
            SensitiveAction.UserRoleChange,
            context,
            table_name=ResourceType.User.value,
            record_id=target.id,
            old_values={"role": old_role},
            new_values={"role": target.role},
        )
    if department_changed:
        await audit_logger.record_sensitive(
            SensitiveAction.UserDepartmentChange,
            context,
            table_name=ResourceType.User.value,
            record_id=target.id,
            old_values={"department_id": old_department},
            new_values={"department_id": target.department_id},
        )
    return target


# ============================================================================
# DELETE (soft)
# ============================================================================
async def delete_user(session: AsyncSession, context: RequestContext, user_id: str) -> None:
    principal = context.principal
    target = await get_user_by_id(session, user_id)

    if not target or not policy.can_view(principal, ResourceType.User, target):
        raise NotFoundOrInaccessible("User not found")

    policy.ensure_can_mutate(principal, ResourceType.User, target, Action.Delete, "Insufficient permissions to delete users")
    if not authz.outranks(principal.role, target.role):
        _deny("Cannot delete a user of equal or higher role", "delete")

    before = snapshot(target, "status", "role", "department_id")
    await users.update_fields(session, target, {"status": UserStatus.Deleted.value, "updated_at": utcnow()})
    await session.commit()

    await audit_logger.record(
        AuditLogCreate(
            table_name=ResourceType.User.value,
            record_id=target.id,
            action=AuditAction.Delete,
            old_values=before,
            new_values={"status": UserStatus.Deleted.value},
        ),
        context,
    )
