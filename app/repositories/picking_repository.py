# app/repositories/picking_repository.py
from typing import List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.orm import joinedload

from app.core.enums import PickingStatus
from app.core.utils import utcnow
from app.models.picking import PickingOrder, PickingItem
from app.repositories.base import BaseRepository


class PickingRepository(BaseRepository[PickingOrder]):
    model = PickingOrder

    async def get(self, entity_id: str, *, for_update: bool = False, refresh: bool = False) -> Optional[PickingOrder]:
        stmt = (
            select(PickingOrder)
            .options(joinedload(PickingOrder.order))
            .where(PickingOrder.id == entity_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=PickingOrder)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_order(self, order_id: str) -> Optional[PickingOrder]:
        stmt = (
            select(PickingOrder)
            .options(joinedload(PickingOrder.order))
            .where(PickingOrder.order_id == order_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_item(self, picking_item_id: str) -> Optional[PickingItem]:
        stmt = (
            select(PickingItem)
            .options(joinedload(PickingItem.picking_order).joinedload(PickingOrder.order))
            .where(PickingItem.id == picking_item_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def claim(self, order_id: str, seller_id: str) -> bool:
        """Single conditional UPDATE; exactly one concurrent caller gets rowcount 1."""
        now = utcnow()
        result = await self.db.execute(
            update(PickingOrder)
            .where(PickingOrder.order_id == order_id, PickingOrder.status == PickingStatus.PENDING)
            .values(
                seller_id=seller_id,
                status=PickingStatus.PICKING,
                assigned_at=now,
                started_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_item_picked(self, item: PickingItem, notes: Optional[str] = None) -> bool:
        """
        Flip one line to picked and bump the parent's counter in the database.
        Guarded on `is_picked = false` so a line is never counted twice.
        """
        now = utcnow()
        values = dict(is_picked=True, picked_quantity=item.quantity, picked_at=now)
        if notes is not None:
            values["notes"] = notes
        result = await self.db.execute(
            update(PickingItem)
            .where(PickingItem.id == item.id, PickingItem.is_picked.is_(False))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self.db.execute(
            update(PickingOrder)
            .where(PickingOrder.id == item.picking_order_id)
            .values(picked_items=PickingOrder.picked_items + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return True

    async def mark_all_picked_if_complete(self, picking_order_id: str) -> bool:
        result = await self.db.execute(
            update(PickingOrder)
            .where(
                PickingOrder.id == picking_order_id,
                PickingOrder.status == PickingStatus.PICKING,
                PickingOrder.picked_items >= PickingOrder.total_items,
            )
            .values(status=PickingStatus.PICKED, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_pending(self) -> List[PickingOrder]:
        stmt = (
            select(PickingOrder)
            .options(joinedload(PickingOrder.order))
            .where(PickingOrder.status == PickingStatus.PENDING)
            .order_by(PickingOrder.created_at.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all())

    async def list_for_seller(self, seller_id: str) -> List[PickingOrder]:
        stmt = (
            select(PickingOrder)
            .options(joinedload(PickingOrder.order))
            .where(
                PickingOrder.seller_id == seller_id,
                PickingOrder.status.in_([PickingStatus.PICKING, PickingStatus.PICKED]),
            )
            .order_by(PickingOrder.assigned_at.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all())

    async def count_open_for_seller(self, seller_id: str) -> int:
        stmt = select(func.count(PickingOrder.id)).where(
            PickingOrder.seller_id == seller_id,
            PickingOrder.status.in_([PickingStatus.PICKING, PickingStatus.PICKED]),
        )
        return await self.db.scalar(stmt) or 0
