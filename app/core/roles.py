# app/core/roles.py

from enum import Enum
from typing import Iterable, Union

from loguru import logger
from prometheus_client import Counter


class Role(str, Enum):
    God = "God"
    Admin = "Admin"
    Manager = "Manager"
    User = "User"
    Guest = "Guest"


# ==========================================================
# ROLE HIERARCHY (single source of truth)
# ==========================================================
ROLE_LEVELS = {
    Role.God: 5,
    Role.Admin: 4,
    Role.Manager: 3,
    Role.User: 2,
    Role.Guest: 1,
}

# Handy role sets used across the services
ADMIN_ROLES = frozenset({Role.Admin, Role.God})
MANAGER_ROLES = frozenset({Role.Manager, Role.Admin, Role.God})

ROLE_FALLBACKS = Counter(
    "role_fallbacks_total",
    "Principals whose stored role was not recognised and fell back to Guest",
)

AUTHORIZATION_DENIALS = Counter(
    "authorization_denials_total",
    "Privileged or mutating actions refused by the authorization layer",
    ["resource", "action"],
)

RoleLike = Union[Role, str, None]


def role_level(role: RoleLike) -> int:
    """
    Numeric level of a role. Anything outside the fixed role set
    (unknown strings, None) is level 0, i.e. below Guest.
    """
    if isinstance(role, Role):
        return ROLE_LEVELS[role]
    try:
        return ROLE_LEVELS[Role(str(role))]
    except ValueError:
        return 0


def parse_role(raw: RoleLike) -> Role:
    """
    Resolve a stored role value to a Role.
    Unrecognised values become Guest and the fallback is reported.
    """
    if isinstance(raw, Role):
        return raw
    try:
        return Role(str(raw).strip())
    except ValueError:
        ROLE_FALLBACKS.inc()
        logger.warning(f"Unrecognised role {raw!r}; falling back to Guest")
        return Role.Guest


class AuthorizationEngine:
    """
    The two decision primitives every resource handler relies on.

    Both are total over the fixed role set and have no side effects.
    """

    def level(self, role: RoleLike) -> int:
        return role_level(role)

    def has_minimum_role(self, actual: RoleLike, required: Iterable[RoleLike]) -> bool:
        # An empty requirement is level 0 and therefore always satisfied.
        # Callers must never pass an empty set for a real restriction.
        required_levels = [role_level(r) for r in required]
        required_level = min(required_levels) if required_levels else 0
        return role_level(actual) >= required_level

    def outranks(self, actual: RoleLike, other: RoleLike) -> bool:
        # strictly greater: peers cannot manage peers
        return role_level(actual) > role_level(other)


authz = AuthorizationEngine()
