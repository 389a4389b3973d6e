# app/services/repository.py

from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from app.core.filters import ALLOW_ALL, Filter, all_of, eq, in_, to_clause

ModelT = TypeVar("ModelT", bound=SQLModel)


class ResourceRepository(Generic[ModelT]):
    """
    Storage access for one resource table. Every read takes a filter
    tree from the visibility policy; nothing here decides who may see what.
    """

    def __init__(self, model: Type[ModelT]):
        self.model = model

    def _where(self, scope: Filter, criteria: Optional[Dict[str, Any]] = None):
        clauses = [scope]
        for field, value in (criteria or {}).items():
            if value is not None:
                clauses.append(eq(field, value))
        return to_clause(all_of(*clauses), self.model)

    async def select(
        self,
        session: AsyncSession,
        scope: Filter = ALLOW_ALL,
        criteria: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by=None,
    ) -> List[ModelT]:
        query = select(self.model).where(self._where(scope, criteria))
        if order_by is not None:
            query = query.order_by(order_by)
        elif hasattr(self.model, "created_at"):
            query = query.order_by(self.model.created_at.desc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        result = await session.execute(query)
        return list(result.scalars().all())

    async def get(self, session: AsyncSession, record_id: str, scope: Filter = ALLOW_ALL) -> Optional[ModelT]:
        query = select(self.model).where(to_clause(all_of(scope, eq("id", record_id)), self.model))
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def get_many(self, session: AsyncSession, ids: Sequence[str], scope: Filter = ALLOW_ALL) -> List[ModelT]:
        query = select(self.model).where(to_clause(all_of(scope, in_("id", ids)), self.model))
        result = await session.execute(query)
        return list(result.scalars().all())

    async def count(
        self,
        session: AsyncSession,
        scope: Filter = ALLOW_ALL,
        criteria: Optional[Dict[str, Any]] = None,
    ) -> int:
        query = select(func.count()).select_from(self.model).where(self._where(scope, criteria))
        result = await session.execute(query)
        return result.scalar_one()

    async def insert(self, session: AsyncSession, row: ModelT) -> ModelT:
        session.add(row)
        await session.flush()
        return row

    async def update_fields(self, session: AsyncSession, row: ModelT, values: Dict[str, Any]) -> ModelT:
        for field, value in values.items():
            setattr(row, field, value)
        session.add(row)
        await session.flush()
        return row

    async def update_many(self, session: AsyncSession, ids: Sequence[str], values: Dict[str, Any]) -> int:
        result = await session.execute(
            update(self.model)
            .where(self.model.id.in_(list(ids)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete_many(self, session: AsyncSession, ids: Sequence[str]) -> int:
        result = await session.execute(
            delete(self.model)
            .where(self.model.id.in_(list(ids)))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
