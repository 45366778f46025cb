# app/repositories/base.py
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Thin async data-access wrapper around one aggregate root.

    Repositories never commit; the unit of work that owns the session does.
    """

    model: Type[T]

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, entity_id: str, *, for_update: bool = False, refresh: bool = False) -> Optional[T]:
        """
        Load by primary key.

        `refresh` bypasses the identity map so values written by a bulk UPDATE
        in this transaction are visible. `for_update` takes a row lock where the
        backend supports it.
        """
        stmt = select(self.model).where(self.model.id == entity_id)
        if for_update:
            stmt = stmt.with_for_update()
        if refresh or for_update:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    def add(self, entity: T) -> T:
        self.db.add(entity)
        return entity
