# app/repositories/delivery_repository.py
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import joinedload

from app.core.enums import (
    DeliveryStatus, OrderStatus, FulfillmentType,
    ACTIVE_DELIVERY_STATUSES, FINISHED_DELIVERY_STATUSES,
)
from app.models.delivery import Delivery, DeliveryLocationHistory
from app.models.order import Order
from app.repositories.base import BaseRepository


class DeliveryRepository(BaseRepository[Delivery]):
    model = Delivery

    async def get(self, entity_id: str, *, for_update: bool = False, refresh: bool = False) -> Optional[Delivery]:
        stmt = (
            select(Delivery)
            .options(joinedload(Delivery.order))
            .where(Delivery.id == entity_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=Delivery)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_order(self, order_id: str) -> Optional[Delivery]:
        stmt = (
            select(Delivery)
            .options(joinedload(Delivery.order))
            .where(Delivery.order_id == order_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def count_active(self, courier_id: str) -> int:
        stmt = select(func.count(Delivery.id)).where(
            Delivery.delivery_person_id == courier_id,
            Delivery.status.in_(ACTIVE_DELIVERY_STATUSES),
        )
        return await self.db.scalar(stmt) or 0

    async def list_available_orders(self) -> List[Order]:
        stmt = (
            select(Order)
            .outerjoin(Delivery, Delivery.order_id == Order.id)
            .where(
                Order.status == OrderStatus.READY_FOR_PICKUP,
                Order.fulfillment_type == FulfillmentType.DELIVERY,
                Delivery.id.is_(None),
            )
            .order_by(Order.created_at.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_courier(self, courier_id: str, statuses) -> List[Delivery]:
        stmt = (
            select(Delivery)
            .options(joinedload(Delivery.order))
            .where(Delivery.delivery_person_id == courier_id, Delivery.status.in_(list(statuses)))
            .order_by(Delivery.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all())

    async def list_active(self, courier_id: str) -> List[Delivery]:
        return await self.list_for_courier(courier_id, ACTIVE_DELIVERY_STATUSES)

    async def list_history(self, courier_id: str) -> List[Delivery]:
        return await self.list_for_courier(courier_id, FINISHED_DELIVERY_STATUSES)

    async def latest_locations(self, delivery_id: str, limit: int) -> List[DeliveryLocationHistory]:
        stmt = (
            select(DeliveryLocationHistory)
            .where(DeliveryLocationHistory.delivery_id == delivery_id)
            .order_by(DeliveryLocationHistory.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
