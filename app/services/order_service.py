# app/services/order_service.py
"""
Order ledger: creation, staff-driven status changes, customer cancellation and
the order reads. Creation validates and reserves stock in a single unit of
work; any failure leaves no order, no stock change, no coupon use and no
notification behind.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from app.core.config import get_settings
from app.core.enums import (
    CouponType,
    FulfillmentType,
    MovementType,
    OrderStatus,
    PickingStatus,
    ReferenceType,
    SocketEvent,
    STAFF_ROLES,
    CANCELLABLE_ORDER_STATUSES,
    ACTIVE_DELIVERY_STATUSES,
    DeliveryStatus,
    can_transition,
)
from app.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
)
from app.core.utils import as_utc, generate_order_number, new_id, paginate_query, to_money, utcnow
from app.models.coupon import Coupon
from app.models.order import Order, OrderItem, OrderStatusHistory
from app.models.picking import PickingOrder, PickingItem
from app.services.notification_service import NotificationFanout
from app.services.stock_ledger import StockLedger
from app.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Cancelled by customer"
MANUAL_HANDOFF_STATUSES = (OrderStatus.READY_FOR_PICKUP, OrderStatus.OUT_FOR_DELIVERY)
OPEN_PICKING_STATUSES = (PickingStatus.PENDING, PickingStatus.PICKING, PickingStatus.PICKED)


@dataclass
class OrderLine:
    product_id: str
    quantity: int
    notes: Optional[str] = None


def merge_lines(lines: Sequence[OrderLine]) -> List[OrderLine]:
    """Collapse repeated products into one line, keeping first-seen order."""
    merged: "OrderedDict[str, OrderLine]" = OrderedDict()
    for line in lines:
        if line.quantity is None or line.quantity < 1:
            raise BadRequestError("Item quantity must be at least 1")
        existing = merged.get(line.product_id)
        if existing is None:
            merged[line.product_id] = OrderLine(line.product_id, line.quantity, line.notes)
        else:
            existing.quantity += line.quantity
            existing.notes = existing.notes or line.notes
    return list(merged.values())


def compute_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    if CouponType(coupon.type) is CouponType.PERCENTAGE:
        discount = subtotal * Decimal(coupon.value) / Decimal(100)
        if coupon.max_discount_value is not None:
            discount = min(discount, Decimal(coupon.max_discount_value))
    else:
        discount = Decimal(coupon.value)
    return to_money(min(discount, subtotal))


def validate_coupon(coupon: Coupon, subtotal: Decimal) -> None:
    if not coupon.is_active:
        raise BadRequestError("Coupon is not active")
    if coupon.expires_at is not None and as_utc(coupon.expires_at) < utcnow():
        raise BadRequestError("Coupon has expired")
    if coupon.max_uses is not None and coupon.current_uses >= coupon.max_uses:
        raise BadRequestError("Coupon usage limit reached")
    if coupon.min_order_value is not None and subtotal < Decimal(coupon.min_order_value):
        raise BadRequestError(f"Minimum order value for this coupon is {to_money(coupon.min_order_value)}")


def order_payload(order: Order, **extra) -> Dict[str, Any]:
    payload = {
        "orderId": order.id,
        "orderNumber": order.order_number,
        "status": OrderStatus(order.status).value,
    }
    payload.update(extra)
    return payload


def add_history(uow: UnitOfWork, order_id: str, status: OrderStatus, actor_id: Optional[str], notes: Optional[str]) -> None:
    uow.session.add(OrderStatusHistory(order_id=order_id, status=status, changed_by=actor_id, notes=notes))


async def release_order(uow: UnitOfWork, order: Order, actor_id: Optional[str], reason: str) -> None:
    """
    Undo the effects of order creation: RETURN every line to stock, roll back
    sales counters and cancel the picking order (dropping its seller).
    """
    ledger = StockLedger(uow)
    products = {p.id: p for p in await uow.stock.lock_products(item.product_id for item in order.items)}
    for item in order.items:
        product = products.get(item.product_id)
        if product is None:
            logger.warning(f"Product {item.product_id} of order {order.order_number} no longer exists; skipping stock release")
            continue
        await ledger.record_movement(
            item.product_id,
            MovementType.RETURN,
            item.quantity,
            actor_id=actor_id,
            reason=reason,
            reference_id=order.id,
            reference_type=ReferenceType.ORDER,
            product=product,
        )
        product.sales_count = max((product.sales_count or 0) - item.quantity, 0)

    picking = order.picking_order
    if picking is not None and picking.status != PickingStatus.CANCELLED:
        picking.status = PickingStatus.CANCELLED
        picking.seller_id = None

    delivery = order.delivery
    if delivery is not None and DeliveryStatus(delivery.status) in ACTIVE_DELIVERY_STATUSES:
        delivery.status = DeliveryStatus.FAILED
        delivery.failure_reason = "Order cancelled"


class OrderService:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory
        self.settings = get_settings()

    async def create(
        self,
        customer_id: str,
        items: Sequence[OrderLine],
        fulfillment_type: FulfillmentType,
        delivery_address_id: Optional[str] = None,
        coupon_code: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Order:
        fulfillment_type = FulfillmentType(fulfillment_type)
        lines = merge_lines(items)
        if not lines:
            raise BadRequestError("Order must contain at least one item")

        async with self.uow_factory() as uow:
            # Delivery address must exist and belong to the customer
            if fulfillment_type is FulfillmentType.DELIVERY:
                if not delivery_address_id:
                    raise BadRequestError("Delivery address is required for delivery orders")
                address = await uow.users.get_address(delivery_address_id)
                if address is None or address.user_id != customer_id:
                    raise NotFoundError("Delivery address not found")
            else:
                delivery_address_id = None

            # Lock product rows for the rest of the transaction
            products = {p.id: p for p in await uow.stock.lock_products(line.product_id for line in lines)}
            for line in lines:
                product = products.get(line.product_id)
                if product is None or not product.is_active:
                    raise NotFoundError(f"Product {line.product_id} not found")
                if product.stock < line.quantity:
                    raise InsufficientStockError(
                        f'Insufficient stock for "{product.name}". '
                        f"Available: {product.stock} {product.unit}",
                        product_id=product.id,
                        available=product.stock,
                    )

            # Totals
            subtotal = Decimal("0")
            tax = Decimal("0")
            order_id = new_id()
            order_items = []
            for position, line in enumerate(lines):
                product = products[line.product_id]
                unit_price = to_money(product.price)
                line_total = to_money(unit_price * line.quantity)
                subtotal += line_total
                tax += line_total * Decimal(product.tax_rate or 0)
                order_items.append(OrderItem(
                    id=new_id(),
                    order_id=order_id,
                    product_id=product.id,
                    position=position,
                    product_name=product.name,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    total=line_total,
                    notes=line.notes,
                ))
            subtotal = to_money(subtotal)
            tax = to_money(tax)

            coupon = None
            discount = Decimal("0.00")
            if coupon_code:
                coupon = await uow.orders.get_coupon_by_code(coupon_code, for_update=True)
                if coupon is None:
                    raise NotFoundError("Coupon not found")
                validate_coupon(coupon, subtotal)
                discount = compute_discount(coupon, subtotal)

            delivery_fee = to_money(self.settings.DELIVERY_FEE) if fulfillment_type is FulfillmentType.DELIVERY else to_money(0)
            total = to_money(subtotal + tax + delivery_fee - discount)

            order_number = generate_order_number()
            order = Order(
                id=order_id,
                order_number=order_number,
                customer_id=customer_id,
                status=OrderStatus.PENDING,
                fulfillment_type=fulfillment_type,
                delivery_address_id=delivery_address_id,
                coupon_id=coupon.id if coupon else None,
                subtotal=subtotal,
                tax=tax,
                delivery_fee=delivery_fee,
                discount=discount,
                total=total,
                notes=notes,
                items=order_items,
                status_history=[
                    OrderStatusHistory(status=OrderStatus.PENDING, changed_by=customer_id, notes="Order created")
                ],
                picking_order=PickingOrder(
                    status=PickingStatus.PENDING,
                    total_items=len(order_items),
                    picked_items=0,
                    items=[
                        PickingItem(
                            order_item=item,
                            product_id=item.product_id,
                            position=item.position,
                            quantity=item.quantity,
                            is_picked=False,
                            picked_quantity=0,
                        )
                        for item in order_items
                    ],
                ),
                delivery=None,
            )
            uow.orders.add(order)

            # Reserve stock
            ledger = StockLedger(uow)
            for line in lines:
                product = products[line.product_id]
                await ledger.record_movement(
                    product.id,
                    MovementType.OUT,
                    line.quantity,
                    actor_id=customer_id,
                    reason=f"Order {order_number}",
                    reference_id=order_id,
                    reference_type=ReferenceType.ORDER,
                    product=product,
                )
                product.sales_count = (product.sales_count or 0) + line.quantity

            if coupon is not None:
                coupon.current_uses = (coupon.current_uses or 0) + 1

            await uow.orders.clear_cart(customer_id)
            await uow.session.flush()

            await NotificationFanout(uow).notify_roles(
                STAFF_ROLES,
                SocketEvent.NEW_ORDER,
                "New order",
                f"Order {order_number} received with {len(order_items)} item(s), total {total}",
                order_payload(order, total=str(total), fulfillmentType=fulfillment_type.value, itemCount=len(order_items)),
            )

            order = await uow.orders.get(order_id, refresh=True)
            await uow.commit()

        logger.info(f"Order {order_number} created for customer {customer_id}: total {total}")
        return order

    async def update_status(self, order_id: str, new_status: OrderStatus, actor_id: str, notes: Optional[str] = None) -> Order:
        new_status = OrderStatus(new_status)

        async with self.uow_factory() as uow:
            order = await uow.orders.get(order_id, for_update=True)
            if order is None:
                raise NotFoundError("Order not found")

            current = OrderStatus(order.status)
            if not can_transition(current, new_status):
                raise InvalidTransitionError(current, new_status)

            values: Dict[str, Any] = {"status": new_status}
            now = utcnow()
            if new_status is OrderStatus.DELIVERED:
                values["delivered_at"] = now
            elif new_status is OrderStatus.CANCELLED:
                values["cancelled_at"] = now
                values["cancel_reason"] = notes

            if not await uow.orders.transition_if(order_id, [current], **values):
                raise ConflictError("Order status changed concurrently, reload and retry")
            add_history(uow, order_id, new_status, actor_id, notes)

            picking = order.picking_order
            if new_status in MANUAL_HANDOFF_STATUSES and picking is not None and PickingStatus(picking.status) in OPEN_PICKING_STATUSES:
                # Staff moved the order past picking by hand; close the picking order with it
                picking.status = PickingStatus.READY
                picking.completed_at = now

            fanout = NotificationFanout(uow)
            if new_status is OrderStatus.CANCELLED:
                await release_order(uow, order, actor_id, f"Order {order.order_number} cancelled")
                await fanout.notify_roles(
                    STAFF_ROLES,
                    SocketEvent.ORDER_CANCELLED,
                    "Order cancelled",
                    f"Order {order.order_number} was cancelled",
                    order_payload(order, status=new_status.value, reason=notes),
                )

            fanout.notify_user(
                order.customer_id,
                SocketEvent.ORDER_STATUS_CHANGED,
                "Order updated",
                f"Your order {order.order_number} is now {new_status.value}",
                order_payload(order, status=new_status.value),
            )

            order = await uow.orders.get(order_id, refresh=True)
            await uow.commit()

        logger.info(f"Order {order.order_number} moved {current.value} -> {new_status.value} by {actor_id}")
        return order

    async def cancel(self, order_id: str, actor_id: str, reason: Optional[str] = None) -> Order:
        reason = reason or DEFAULT_CANCEL_REASON

        async with self.uow_factory() as uow:
            order = await uow.orders.get(order_id, for_update=True)
            if order is None:
                raise NotFoundError("Order not found")
            if order.customer_id != actor_id:
                raise ForbiddenError("You can only cancel your own orders")

            current = OrderStatus(order.status)
            if current not in CANCELLABLE_ORDER_STATUSES:
                raise BadRequestError(f'Order cannot be cancelled in status "{current.value}"')

            if not await uow.orders.transition_if(
                order_id,
                CANCELLABLE_ORDER_STATUSES,
                status=OrderStatus.CANCELLED,
                cancelled_at=utcnow(),
                cancel_reason=reason,
            ):
                raise ConflictError("Order status changed concurrently, reload and retry")

            await release_order(uow, order, actor_id, f"Order {order.order_number} cancelled")
            add_history(uow, order_id, OrderStatus.CANCELLED, actor_id, reason)

            fanout = NotificationFanout(uow)
            await fanout.notify_roles(
                STAFF_ROLES,
                SocketEvent.ORDER_CANCELLED,
                "Order cancelled",
                f"Order {order.order_number} was cancelled by the customer",
                order_payload(order, status=OrderStatus.CANCELLED.value, reason=reason),
            )
            fanout.notify_user(
                order.customer_id,
                SocketEvent.ORDER_STATUS_CHANGED,
                "Order cancelled",
                f"Your order {order.order_number} was cancelled",
                order_payload(order, status=OrderStatus.CANCELLED.value, reason=reason),
            )

            order = await uow.orders.get(order_id, refresh=True)
            await uow.commit()

        logger.info(f"Order {order.order_number} cancelled by customer {actor_id}: {reason}")
        return order

    async def get_order(self, order_id: str) -> Order:
        async with self.uow_factory() as uow:
            order = await uow.orders.get(order_id)
            if order is None:
                raise NotFoundError("Order not found")
            return order

    async def get_tracking(self, order_id: str) -> Dict[str, Any]:
        async with self.uow_factory() as uow:
            order = await uow.orders.get(order_id)
            if order is None:
                raise NotFoundError("Order not found")
            return {
                "id": order.id,
                "order_number": order.order_number,
                "customer_id": order.customer_id,
                "status": order.status,
                "created_at": order.created_at,
                "delivered_at": order.delivered_at,
                "history": list(order.status_history),
            }

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        fulfillment_type: Optional[FulfillmentType] = None,
        search: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        async with self.uow_factory() as uow:
            query = uow.orders.filtered_query(
                status=status,
                fulfillment_type=fulfillment_type,
                search=search,
                start_date=start_date,
                end_date=end_date,
                sort_by=sort_by,
                sort_order=sort_order,
            )
            return await paginate_query(query, uow.session, page, limit)

    async def list_customer_orders(self, customer_id: str, status: Optional[OrderStatus] = None,
                                   page: int = 1, limit: int = 20) -> Dict[str, Any]:
        async with self.uow_factory() as uow:
            query = uow.orders.filtered_query(status=status, customer_id=customer_id)
            return await paginate_query(query, uow.session, page, limit)
