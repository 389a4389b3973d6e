# app/core/principal.py

from dataclasses import dataclass
from typing import Optional

from app.core.roles import Role, parse_role


@dataclass(frozen=True)
class Principal:
    """The authenticated caller. Built once per request, never mutated."""

    id: str
    email: str
    role: Role
    department_id: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(
            id=str(user.id),
            email=user.email or "",
            role=parse_role(user.role),
            department_id=user.department_id,
        )


@dataclass(frozen=True)
class RequestContext:
    """Who is acting and from where; carried into audit entries."""

    principal: Optional[Principal]
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @property
    def user_id(self) -> Optional[str]:
        return self.principal.id if self.principal else None
