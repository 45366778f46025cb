# app/repositories/sale_repository.py
from datetime import datetime
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy import select, func

from app.models.sale import Sale, SaleItem
from app.repositories.base import BaseRepository


class SaleRepository(BaseRepository[Sale]):
    model = Sale

    def _completed_between(self, seller_id: str, start: datetime, end: datetime):
        return (
            Sale.seller_id == seller_id,
            Sale.is_suspended.is_(False),
            Sale.created_at >= start,
            Sale.created_at < end,
        )

    async def totals_between(self, seller_id: str, start: datetime, end: datetime) -> Tuple[int, Decimal, int]:
        """(ticket count, summed totals, units sold) for a seller's completed sales in [start, end)."""
        row = (await self.db.execute(
            select(func.count(Sale.id), func.coalesce(func.sum(Sale.total), 0))
            .where(*self._completed_between(seller_id, start, end))
        )).one()
        units = await self.db.scalar(
            select(func.coalesce(func.sum(SaleItem.quantity), 0))
            .join(Sale, SaleItem.sale_id == Sale.id)
            .where(*self._completed_between(seller_id, start, end))
        )
        return row[0], Decimal(str(row[1])), int(units or 0)

    async def list_suspended(self, seller_id: str) -> List[Sale]:
        stmt = (
            select(Sale)
            .where(Sale.seller_id == seller_id, Sale.is_suspended.is_(True))
            .order_by(Sale.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
