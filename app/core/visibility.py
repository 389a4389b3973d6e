# app/core/visibility.py
"""
Scoped visibility policy.

For every resource type this module answers two questions:

* which rows may a principal *see*? (``visibility_filter``)
* may a principal *change* a given existing row? (``can_mutate``)

The read side returns a filter tree (see ``app.core.filters``) so the
storage layer can apply it before any row leaves the database. The
write side is evaluated against the stored row itself, never against a
list the caller already filtered.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from loguru import logger

from app.core.constants import get_department_id
from app.core.errors import Forbidden
from app.core.filters import (
    ALLOW_ALL,
    DENY_ALL,
    Filter,
    all_of,
    any_of,
    eq,
    evaluate,
    is_null,
)
from app.core.principal import Principal
from app.core.roles import (
    ADMIN_ROLES,
    AUTHORIZATION_DENIALS,
    MANAGER_ROLES,
    AuthorizationEngine,
    Role,
    authz,
)


class ResourceType(str, Enum):
    Task = "tasks"
    Sop = "sops"
    ClockSession = "clock_sessions"
    Reminder = "reminders"
    Feedback = "feedback"
    User = "users"


class Action(str, Enum):
    Update = "update"
    Delete = "delete"


@dataclass(frozen=True)
class ResourcePolicy:
    owner_fields: Tuple[str, ...]
    # owners allowed to update / delete; empty falls back to the broader set
    writer_fields: Tuple[str, ...] = ()
    deleter_fields: Tuple[str, ...] = ()
    # Managers also see / manage rows without a department (SOPs)
    org_wide_for_managers: bool = False
    # Rows in this status are readable by everyone in the department (SOPs)
    shared_status: Optional[str] = None
    # Extra role floors layered over the row rule; empty means no floor
    update_floor: FrozenSet[Role] = frozenset()
    delete_floor: FrozenSet[Role] = frozenset()
    # Status a delete leaves behind; setting it through an update needs delete rights
    removed_status: Optional[str] = None


POLICIES = {
    ResourceType.Task: ResourcePolicy(
        owner_fields=("assigned_to", "created_by"),
        deleter_fields=("created_by",),
        removed_status="cancelled",
    ),
    ResourceType.Sop: ResourcePolicy(
        owner_fields=("created_by",),
        org_wide_for_managers=True,
        shared_status="active",
        update_floor=MANAGER_ROLES,
        delete_floor=ADMIN_ROLES,
        removed_status="archived",
    ),
    ResourceType.ClockSession: ResourcePolicy(
        owner_fields=("user_id",),
        delete_floor=ADMIN_ROLES,
        removed_status="cancelled",
    ),
    ResourceType.Reminder: ResourcePolicy(owner_fields=("user_id",), removed_status="cancelled"),
    ResourceType.Feedback: ResourcePolicy(
        owner_fields=("user_id", "target_user_id"),
        writer_fields=("user_id",),
        removed_status="closed",
    ),
    ResourceType.User: ResourcePolicy(
        owner_fields=("id",),
        delete_floor=ADMIN_ROLES,
        removed_status="deleted",
    ),
}


class VisibilityPolicy:
    def __init__(self, engine: AuthorizationEngine = authz):
        self.engine = engine

    # ------------------------------------------------------------
    # READ SCOPE
    # ------------------------------------------------------------
    def _ownership(self, principal: Principal, policy: ResourcePolicy, fields: Tuple[str, ...] = ()) -> Filter:
        return any_of(*(eq(field, principal.id) for field in fields or policy.owner_fields))

    def _same_department(self, principal: Principal, policy: ResourcePolicy) -> Filter:
        same_dept = eq("department_id", principal.department_id)
        if policy.org_wide_for_managers:
            return any_of(same_dept, is_null("department_id"))
        return same_dept

    def _shared_in_department(self, principal: Principal, policy: ResourcePolicy) -> Filter:
        if policy.shared_status is None:
            return DENY_ALL
        if principal.department_id:
            in_scope = any_of(eq("department_id", principal.department_id), is_null("department_id"))
        else:
            in_scope = is_null("department_id")
        return all_of(eq("status", policy.shared_status), in_scope)

    def scope_filter(self, principal: Principal, resource_type: ResourceType) -> Filter:
        policy = POLICIES[resource_type]

        if self.engine.has_minimum_role(principal.role, ADMIN_ROLES):
            return ALLOW_ALL

        if principal.role == Role.Manager and principal.department_id:
            return self._same_department(principal, policy)

        # User, Guest, and Managers without a department
        return any_of(
            self._ownership(principal, policy),
            self._shared_in_department(principal, policy),
        )

    def visibility_filter(
        self,
        principal: Principal,
        resource_type: ResourceType,
        department_filter: Optional[str] = None,
    ) -> Filter:
        """
        Rows the principal may see, optionally narrowed by an explicit
        department filter from the request.

        The explicit filter never widens the scope: it is dropped for
        roles below Manager, and a Manager may only name their own
        department.
        """
        scope = self.scope_filter(principal, resource_type)
        department_id = get_department_id(department_filter)

        if not department_id or department_id == "all":
            return scope

        if not self.engine.has_minimum_role(principal.role, MANAGER_ROLES):
            logger.info(
                f"Ignoring department filter '{department_id}' from {principal.role.value} {principal.id}"
            )
            return scope

        if principal.role == Role.Manager and department_id != principal.department_id:
            logger.warning(
                f"Manager {principal.id} asked for department '{department_id}' "
                f"outside their own '{principal.department_id}'; filter ignored"
            )
            return scope

        return all_of(scope, eq("department_id", department_id))

    def can_view(self, principal: Principal, resource_type: ResourceType, row) -> bool:
        return evaluate(self.scope_filter(principal, resource_type), row)

    # ------------------------------------------------------------
    # WRITE SCOPE
    # ------------------------------------------------------------
    def is_owner(
        self,
        principal: Principal,
        resource_type: ResourceType,
        row,
        action: Action = Action.Update,
    ) -> bool:
        policy = POLICIES[resource_type]
        fields = policy.writer_fields
        if action == Action.Delete and policy.deleter_fields:
            fields = policy.deleter_fields
        return evaluate(self._ownership(principal, policy, fields), row)

    def can_mutate(
        self,
        principal: Principal,
        resource_type: ResourceType,
        row,
        action: Action = Action.Update,
    ) -> bool:
        policy = POLICIES[resource_type]
        floor = policy.delete_floor if action == Action.Delete else policy.update_floor
        if floor and not self.engine.has_minimum_role(principal.role, floor):
            return False

        if self.engine.has_minimum_role(principal.role, ADMIN_ROLES):
            return True

        if principal.role == Role.Manager and principal.department_id:
            row_department = getattr(row, "department_id", None)
            if row_department == principal.department_id:
                return True
            if policy.org_wide_for_managers and row_department is None:
                return True

        return self.is_owner(principal, resource_type, row, action)

    def ensure_can_mutate(
        self,
        principal: Principal,
        resource_type: ResourceType,
        row,
        action: Action = Action.Update,
        message: Optional[str] = None,
    ) -> None:
        if not self.can_mutate(principal, resource_type, row, action):
            AUTHORIZATION_DENIALS.labels(resource=resource_type.value, action=action.value).inc()
            raise Forbidden(message or f"Cannot {action.value} this record")

    def ensure_can_set_status(
        self,
        principal: Principal,
        resource_type: ResourceType,
        row,
        new_status: Optional[str],
        message: Optional[str] = None,
    ) -> None:
        """An update that moves a row into its removed status is a delete."""
        removed = POLICIES[resource_type].removed_status
        if new_status is None or removed is None:
            return
        if new_status == removed and getattr(row, "status", None) != removed:
            self.ensure_can_mutate(principal, resource_type, row, Action.Delete, message)

    # ------------------------------------------------------------
    # ASSIGNMENT
    # ------------------------------------------------------------
    def can_assign_to(self, principal: Principal, assignee_department_id: Optional[str]) -> bool:
        """
        Second-order check for handing a row to someone else. The caller
        has to look up the assignee's department first.
        """
        if not self.engine.has_minimum_role(principal.role, MANAGER_ROLES):
            return False
        if principal.role == Role.Manager:
            return (
                principal.department_id is not None
                and assignee_department_id == principal.department_id
            )
        return True


policy = VisibilityPolicy()
