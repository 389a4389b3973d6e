# app/services/bulk_service.py
"""
All-or-nothing authorization for multi-row operations.

A batch is checked completely before anything is written:

1. every requested id must come back through the caller's read scope
   (a missing, out-of-scope or duplicated id changes the count);
2. every row must pass the same per-row mutation rule single-row
   handlers use;
3. optional business-state guards (e.g. "already completed") run last.

Only an ``Allowed`` decision lets the caller mutate. Rejections carry
counts, never the ids that failed.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Union

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    BatchPartiallyUnauthorized,
    BatchRejected,
    InvalidRequest,
    NotFoundOrInaccessible,
)
from app.core.principal import Principal
from app.core.roles import AUTHORIZATION_DENIALS
from app.core.visibility import Action, ResourceType, VisibilityPolicy, policy
from app.services.repository import ResourceRepository


# ----------------------------------------------------------------
# DECISIONS
# ----------------------------------------------------------------
@dataclass(frozen=True)
class Allowed:
    rows: List = field(default_factory=list)


@dataclass(frozen=True)
class Denied:
    reason: str
    code: str = "forbidden"  # invalid / not_found / conflict / forbidden


@dataclass(frozen=True)
class PartiallyDenied:
    unauthorized_count: int


BatchDecision = Union[Allowed, Denied, PartiallyDenied]


@dataclass(frozen=True)
class StateGuard:
    """Business-state check layered after authorization."""

    blocks: Callable[[object], bool]
    describe: Callable[[int], str]


class BulkOperationValidator:
    def __init__(self, visibility: VisibilityPolicy = policy):
        self.visibility = visibility

    async def validate(
        self,
        session: AsyncSession,
        principal: Principal,
        resource_type: ResourceType,
        repository: ResourceRepository,
        ids: Sequence[str],
        action: Action = Action.Update,
        guard: Optional[StateGuard] = None,
    ) -> BatchDecision:
        if not ids:
            return Denied("ids array is required", code="invalid")

        # duplicates are not collapsed; they surface as a count mismatch
        scope = self.visibility.scope_filter(principal, resource_type)
        rows = await repository.get_many(session, ids, scope=scope)
        if len(rows) != len(ids):
            logger.info(
                f"Bulk {action.value} on {resource_type.value} by {principal.id}: "
                f"{len(ids)} requested, {len(rows)} accessible"
            )
            return Denied("Some ids not found or inaccessible", code="not_found")

        unauthorized = [
            row for row in rows
            if not self.visibility.can_mutate(principal, resource_type, row, action)
        ]
        if unauthorized:
            AUTHORIZATION_DENIALS.labels(resource=resource_type.value, action=f"bulk_{action.value}").inc()
            logger.warning(
                f"Bulk {action.value} on {resource_type.value} by {principal.id} rejected: "
                f"{len(unauthorized)} unauthorized row(s)"
            )
            return PartiallyDenied(len(unauthorized))

        if guard is not None:
            blocked = [row for row in rows if guard.blocks(row)]
            if blocked:
                return Denied(guard.describe(len(blocked)), code="conflict")

        return Allowed(rows)


def raise_for_decision(decision: BatchDecision, noun: str = "item") -> List:
    """Turn a rejection into the matching error; return the rows otherwise."""
    if isinstance(decision, Allowed):
        return decision.rows
    if isinstance(decision, PartiallyDenied):
        raise BatchPartiallyUnauthorized(decision.unauthorized_count, noun)
    if decision.code == "invalid":
        raise InvalidRequest(decision.reason)
    if decision.code == "not_found":
        raise NotFoundOrInaccessible(decision.reason)
    raise BatchRejected(decision.reason)


bulk_validator = BulkOperationValidator()
