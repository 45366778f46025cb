# app/repositories/order_repository.py
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, update, delete, and_, or_, Select

from app.core.enums import OrderStatus, FulfillmentType, DeliveryStatus
from app.core.utils import utcnow
from app.models.cart import Cart, CartItem
from app.models.coupon import Coupon
from app.models.delivery import Delivery
from app.models.order import Order
from app.repositories.base import BaseRepository

SORTABLE_COLUMNS = {
    "created_at": Order.created_at,
    "updated_at": Order.updated_at,
    "total": Order.total,
    "status": Order.status,
    "order_number": Order.order_number,
}


class OrderRepository(BaseRepository[Order]):
    model = Order

    async def transition_if(
        self,
        order_id: str,
        expected: Iterable[OrderStatus],
        require_no_courier: bool = False,
        **values,
    ) -> bool:
        """
        Conditional status write: only applies when the row is still in one of
        the `expected` statuses. Returns True when this call won the row.
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status.in_(list(expected)))
            .values(updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if require_no_courier:
            stmt = stmt.where(Order.delivery_person_id.is_(None))
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    def filtered_query(
        self,
        status: Optional[OrderStatus] = None,
        fulfillment_type: Optional[FulfillmentType] = None,
        customer_id: Optional[str] = None,
        search: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Select:
        stmt = select(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        if fulfillment_type:
            stmt = stmt.where(Order.fulfillment_type == fulfillment_type)
        if customer_id:
            stmt = stmt.where(Order.customer_id == customer_id)
        if search:
            stmt = stmt.where(or_(Order.order_number.ilike(f"%{search}%"), Order.notes.ilike(f"%{search}%")))
        if start_date:
            stmt = stmt.where(Order.created_at >= start_date)
        if end_date:
            stmt = stmt.where(Order.created_at <= end_date)

        column = SORTABLE_COLUMNS.get(sort_by, Order.created_at)
        return stmt.order_by(column.asc() if sort_order == "asc" else column.desc())

    async def get_coupon_by_code(self, code: str, for_update: bool = False) -> Optional[Coupon]:
        stmt = select(Coupon).where(Coupon.code == code.strip().upper())
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def clear_cart(self, user_id: str) -> int:
        cart_id = await self.db.scalar(select(Cart.id).where(Cart.user_id == user_id))
        if cart_id is None:
            return 0
        result = await self.db.execute(
            delete(CartItem).where(CartItem.cart_id == cart_id).execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def list_awaiting_handoff(self) -> List[Order]:
        """Orders waiting at the counter: ready, or assigned to a courier who has not collected them yet."""
        stmt = (
            select(Order)
            .outerjoin(Delivery, Delivery.order_id == Order.id)
            .where(or_(
                Order.status == OrderStatus.READY_FOR_PICKUP,
                and_(Order.status == OrderStatus.OUT_FOR_DELIVERY, Delivery.status == DeliveryStatus.ASSIGNED),
            ))
            .order_by(Order.updated_at.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
