# app/core/rbac.py

from fastapi import Depends

from app.api.deps import get_current_principal
from app.core.errors import Forbidden
from app.core.principal import Principal
from app.core.roles import AUTHORIZATION_DENIALS, Role, authz


def AllowRoles(*allowed_roles, resource: str = "endpoint"):
    """
    Minimum-role gate for routers:
    - Accepts Role values or raw strings
    - Any role at or above the lowest allowed role passes
    """
    if not allowed_roles:
        raise ValueError("AllowRoles needs at least one role")

    required = {r if isinstance(r, Role) else Role(str(r).strip()) for r in allowed_roles}

    async def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not authz.has_minimum_role(principal.role, required):
            AUTHORIZATION_DENIALS.labels(resource=resource, action="access").inc()
            raise Forbidden(f"Access denied for role '{principal.role.value}'")
        return principal

    return role_checker


require_admin = AllowRoles(Role.Admin, Role.God, resource="admin")
