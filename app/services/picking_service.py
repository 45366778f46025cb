# app/services/picking_service.py
"""
Picking coordinator.

A picking order is created PENDING together with its order. A seller claims it
with a single conditional UPDATE, confirms each line by barcode scan or by a
manual pick, and completes it, which hands the order over for pickup or
delivery.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from app.core.enums import (
    FulfillmentType,
    OrderStatus,
    PickingStatus,
    Role,
    SocketEvent,
    HANDOFF_TRANSITIONS,
)
from app.core.exceptions import (
    AlreadyClaimedError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from app.core.utils import utcnow
from app.models.picking import PickingOrder, PickingItem
from app.services.notification_service import NotificationFanout
from app.services.order_service import add_history, order_payload
from app.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

SCANNABLE_STATUSES = (PickingStatus.PICKING, PickingStatus.PICKED)
COMPLETABLE_STATUSES = (PickingStatus.PICKING, PickingStatus.PICKED)
MANUAL_PICK_NOTE = "Manual pick without barcode scan"

ALREADY_PICKED = "ALREADY_PICKED"
NO_MATCH = "NO_MATCH"


@dataclass
class PickingProgress:
    picked: int
    total: int
    all_picked: bool


@dataclass
class ScanResult:
    """Outcome of a barcode scan. Mismatches are results, not exceptions."""
    success: bool
    message: str
    reason: Optional[str] = None
    item: Optional[PickingItem] = None
    progress: Optional[PickingProgress] = None
    expected_products: List[Dict[str, Any]] = field(default_factory=list)


def progress_of(picking: PickingOrder) -> PickingProgress:
    return PickingProgress(
        picked=picking.picked_items,
        total=picking.total_items,
        all_picked=picking.all_picked,
    )


def expected_products(picking: PickingOrder) -> List[Dict[str, Any]]:
    return [
        {
            "pickingItemId": item.id,
            "productId": item.product_id,
            "name": item.product.name if item.product else None,
            "barcode": item.product.barcode if item.product else None,
            "quantity": item.quantity,
        }
        for item in picking.items
        if not item.is_picked
    ]


class PickingService:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def list_pending(self) -> List[PickingOrder]:
        async with self.uow_factory() as uow:
            return await uow.picking.list_pending()

    async def list_mine(self, seller_id: str) -> List[PickingOrder]:
        async with self.uow_factory() as uow:
            return await uow.picking.list_for_seller(seller_id)

    async def list_awaiting_handoff(self) -> List[Dict[str, Any]]:
        """Counter queue: orders ready to hand over, with the courier coming for them if any."""
        async with self.uow_factory() as uow:
            orders = await uow.orders.list_awaiting_handoff()
            couriers = await uow.users.get_many(o.delivery.delivery_person_id for o in orders if o.delivery is not None)
            return [
                {
                    "order": order,
                    "delivery": order.delivery,
                    "courier": couriers.get(order.delivery.delivery_person_id) if order.delivery is not None else None,
                }
                for order in orders
            ]

    async def get_picking_order(self, picking_order_id: str) -> PickingOrder:
        async with self.uow_factory() as uow:
            picking = await uow.picking.get(picking_order_id)
            if picking is None:
                raise NotFoundError("Picking order not found")
            return picking

    async def accept_order(self, order_id: str, seller_id: str) -> PickingOrder:
        """
        Claim an order for picking. Exactly one of any number of concurrent
        callers wins; the rest get AlreadyClaimedError.
        """
        async with self.uow_factory() as uow:
            # Order row first: every writer locks order before picking order
            order = await uow.orders.get(order_id, for_update=True)
            if order is None:
                raise NotFoundError("Order not found")

            if not await uow.picking.claim(order_id, seller_id):
                picking = await uow.picking.get_by_order(order_id)
                if picking is None:
                    raise NotFoundError("Picking order not found")
                if picking.status == PickingStatus.CANCELLED:
                    raise AlreadyClaimedError("Order is no longer available for picking")
                raise AlreadyClaimedError("Order has already been accepted by another seller")

            current = OrderStatus(order.status)
            if current in HANDOFF_TRANSITIONS[OrderStatus.PROCESSING]:
                if not await uow.orders.transition_if(order_id, [current], status=OrderStatus.PROCESSING, seller_id=seller_id):
                    raise ConflictError("Order status changed concurrently, reload and retry")
                add_history(uow, order_id, OrderStatus.PROCESSING, seller_id, "Order accepted for picking")
                NotificationFanout(uow).notify_user(
                    order.customer_id,
                    SocketEvent.ORDER_STATUS_CHANGED,
                    "Order in preparation",
                    f"Your order {order.order_number} is being prepared",
                    order_payload(order, status=OrderStatus.PROCESSING.value),
                )
            elif current is OrderStatus.PROCESSING:
                await uow.orders.transition_if(order_id, [current], seller_id=seller_id)
            else:
                raise ConflictError(f'Order in status "{current.value}" cannot be picked')

            picking = await uow.picking.get_by_order(order_id)
            await uow.commit()

        logger.info(f"Order {order.order_number} claimed for picking by seller {seller_id}")
        return picking

    async def scan_item(self, picking_order_id: str, barcode: str, seller_id: str) -> ScanResult:
        barcode = (barcode or "").strip()

        async with self.uow_factory() as uow:
            picking = await self._owned_picking(uow, picking_order_id, seller_id)
            if picking.status not in SCANNABLE_STATUSES:
                raise ConflictError(f'Picking order is "{PickingStatus(picking.status).value}"; items cannot be scanned')

            matches = [item for item in picking.items if item.product is not None and item.product.barcode == barcode]
            if not matches:
                logger.info(f"Barcode {barcode} did not match picking order {picking.id}")
                return ScanResult(
                    success=False,
                    reason=NO_MATCH,
                    message=f"Barcode {barcode} does not match any pending product in this order",
                    progress=progress_of(picking),
                    expected_products=expected_products(picking),
                )

            pending = next((item for item in matches if not item.is_picked), None)
            if pending is None or not await uow.picking.mark_item_picked(pending):
                name = matches[0].product.name
                return ScanResult(
                    success=False,
                    reason=ALREADY_PICKED,
                    message=f'"{name}" has already been collected',
                    item=matches[0],
                    progress=progress_of(picking),
                )

            await uow.picking.mark_all_picked_if_complete(picking.id)
            picking = await uow.picking.get(picking.id)
            item = next(i for i in picking.items if i.id == pending.id)
            await uow.commit()

        logger.info(f"Picked {item.product_id} for picking order {picking.id} ({picking.picked_items}/{picking.total_items})")
        return ScanResult(
            success=True,
            message=f'"{item.product.name}" collected',
            item=item,
            progress=progress_of(picking),
        )

    async def mark_item_picked(self, picking_item_id: str, seller_id: str, notes: Optional[str] = None) -> PickingOrder:
        async with self.uow_factory() as uow:
            item = await uow.picking.get_item(picking_item_id)
            if item is None:
                raise NotFoundError("Picking item not found")
            picking = item.picking_order
            if picking.seller_id != seller_id:
                raise ForbiddenError("You are not assigned to this picking order")
            if item.is_picked:
                raise ConflictError("Item has already been picked")
            if picking.status != PickingStatus.PICKING:
                raise ConflictError(f'Picking order is "{PickingStatus(picking.status).value}"; items cannot be picked')

            if not await uow.picking.mark_item_picked(item, notes or MANUAL_PICK_NOTE):
                raise ConflictError("Item has already been picked")
            await uow.picking.mark_all_picked_if_complete(picking.id)

            picking = await uow.picking.get(picking.id)
            await uow.commit()

        logger.info(f"Manual pick of item {picking_item_id} by seller {seller_id}")
        return picking

    async def complete_picking_order(self, picking_order_id: str, seller_id: str) -> PickingOrder:
        async with self.uow_factory() as uow:
            picking = await self._owned_picking(uow, picking_order_id, seller_id)
            if picking.status not in COMPLETABLE_STATUSES:
                raise ConflictError(f'Picking order cannot be completed from status "{PickingStatus(picking.status).value}"')

            order = await uow.orders.get(picking.order_id, for_update=True)
            if not await uow.orders.transition_if(order.id, HANDOFF_TRANSITIONS[OrderStatus.READY_FOR_PICKUP], status=OrderStatus.READY_FOR_PICKUP):
                raise ConflictError(f'Order in status "{OrderStatus(order.status).value}" cannot be made ready')

            picking.status = PickingStatus.READY
            picking.completed_at = utcnow()
            add_history(uow, order.id, OrderStatus.READY_FOR_PICKUP, seller_id, "Picking completed")

            fanout = NotificationFanout(uow)
            payload = order_payload(
                order,
                status=OrderStatus.READY_FOR_PICKUP.value,
                fulfillmentType=FulfillmentType(order.fulfillment_type).value,
            )
            if FulfillmentType(order.fulfillment_type) is FulfillmentType.DELIVERY:
                await fanout.notify_roles(
                    [Role.DELIVERY],
                    SocketEvent.ORDER_READY_FOR_PICKUP,
                    "Order ready for delivery",
                    f"Order {order.order_number} is ready to be picked up",
                    payload,
                )
            fanout.notify_user(
                order.customer_id,
                SocketEvent.ORDER_READY_FOR_PICKUP,
                "Order ready",
                f"Your order {order.order_number} is ready",
                payload,
            )

            picking = await uow.picking.get(picking.id)
            await uow.commit()

        logger.info(f"Picking order {picking.id} completed by seller {seller_id}")
        return picking

    async def _owned_picking(self, uow: UnitOfWork, picking_order_id: str, seller_id: str) -> PickingOrder:
        picking = await uow.picking.get(picking_order_id)
        if picking is None:
            raise NotFoundError("Picking order not found")
        if picking.seller_id != seller_id:
            raise ForbiddenError("You are not assigned to this picking order")
        return picking
