from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.core.enums import (
    CouponType,
    FulfillmentType,
    MovementType,
    OrderStatus,
    PickingStatus,
    ReferenceType,
    Role,
    SocketEvent,
)
from app.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
)
from app.models.coupon import Coupon
from app.models.inventory import InventoryMovement
from app.models.notification import Notification
from app.models.order import Order
from app.models.picking import PickingOrder
from app.models.product import Product
from app.services.order_service import OrderLine, OrderService, merge_lines
from app.services.websockets.manager import role_room, user_room


@pytest.fixture
def service(uow_factory):
    return OrderService(uow_factory)


async def count(session_factory, model, *criteria):
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model).where(*criteria))


async def test_create_reserves_stock_and_prices_order(service, factory, customer, staff, session_factory):
    # 2 units of a 10.00 product with 5 on hand
    product = await factory.product(stock=5, price="10.00")

    order = await service.create(customer.id, [OrderLine(product.id, 2)], FulfillmentType.PICKUP)

    assert order.status == OrderStatus.PENDING
    assert order.subtotal == Decimal("20.00")
    assert order.delivery_fee == Decimal("0.00")
    assert order.total == Decimal("20.00")
    assert order.order_number.startswith("PED-")
    assert [item.product_name for item in order.items] == [product.name]
    assert [h.status for h in order.status_history] == [OrderStatus.PENDING]

    stored = await factory.get(Product, product.id)
    assert stored.stock == 3
    assert stored.sales_count == 2

    movements = await count(
        session_factory, InventoryMovement,
        InventoryMovement.reference_id == order.id,
        InventoryMovement.type == MovementType.OUT,
        InventoryMovement.reference_type == ReferenceType.ORDER,
    )
    assert movements == 1


async def test_create_builds_pending_picking_order_mirroring_lines(service, factory, customer, staff):
    first = await factory.product(stock=5)
    second = await factory.product(stock=5)

    order = await service.create(
        customer.id,
        [OrderLine(first.id, 1), OrderLine(second.id, 2), OrderLine(first.id, 1)],
        FulfillmentType.PICKUP,
    )

    picking = order.picking_order
    assert picking.status == PickingStatus.PENDING
    assert picking.seller_id is None
    assert picking.total_items == 2
    assert picking.picked_items == 0
    assert [(i.product_id, i.quantity) for i in picking.items] == [(first.id, 2), (second.id, 2)]
    assert [i.quantity for i in order.items] == [2, 2]


async def test_insufficient_stock_rejects_whole_order(service, factory, customer, staff, session_factory, connection_manager):
    plenty = await factory.product(stock=50)
    scarce = await factory.product(stock=5, name="Feijao 1kg")

    with pytest.raises(InsufficientStockError) as exc_info:
        await service.create(
            customer.id, [OrderLine(plenty.id, 1), OrderLine(scarce.id, 10)], FulfillmentType.PICKUP
        )

    assert "Available: 5" in exc_info.value.message
    assert (await factory.get(Product, scarce.id)).stock == 5
    assert (await factory.get(Product, plenty.id)).stock == 50
    assert await count(session_factory, Order) == 0
    assert await count(session_factory, InventoryMovement) == 0
    assert connection_manager.sent == []


async def test_coupon_below_minimum_order_value_rejected(service, factory, customer, staff, session_factory):
    product = await factory.product(stock=10, price="10.00")
    coupon = await factory.coupon(code="BIG50", min_order_value=Decimal("50.00"))

    with pytest.raises(BadRequestError, match="Minimum order value"):
        await service.create(customer.id, [OrderLine(product.id, 3)], FulfillmentType.PICKUP, coupon_code="BIG50")

    assert await count(session_factory, Order) == 0
    assert (await factory.get(Product, product.id)).stock == 10
    assert (await factory.get(Coupon, coupon.id)).current_uses == 0


async def test_total_formula_with_tax_fee_and_coupon(service, factory, customer, customer_address, staff):
    taxed = await factory.product(stock=10, price="19.99", tax_rate="0.10")
    untaxed = await factory.product(stock=10, price="5.50")
    coupon = await factory.coupon(code="SAVE10", type=CouponType.PERCENTAGE, value="10")

    order = await service.create(
        customer.id,
        [OrderLine(taxed.id, 3), OrderLine(untaxed.id, 2)],
        FulfillmentType.DELIVERY,
        delivery_address_id=customer_address.id,
        coupon_code="save10",
    )

    assert order.subtotal == Decimal("70.97")
    assert order.tax == Decimal("6.00")
    assert order.delivery_fee == Decimal("5.99")
    assert order.discount == Decimal("7.10")
    assert order.total == (order.subtotal + order.tax + order.delivery_fee - order.discount).quantize(Decimal("0.01"))
    assert order.coupon_id == coupon.id
    assert (await factory.get(Coupon, coupon.id)).current_uses == 1


async def test_fixed_coupon_never_exceeds_subtotal(service, factory, customer, staff):
    product = await factory.product(stock=10, price="3.00")
    await factory.coupon(code="FIFTY", type=CouponType.FIXED_AMOUNT, value="50")

    order = await service.create(customer.id, [OrderLine(product.id, 1)], FulfillmentType.PICKUP, coupon_code="FIFTY")

    assert order.discount == Decimal("3.00")
    assert order.total == Decimal("0.00")


@pytest.mark.parametrize("coupon_kwargs, message", [
    ({"is_active": False}, "not active"),
    ({"max_uses": 1, "current_uses": 1}, "usage limit"),
])
async def test_unusable_coupons(service, factory, customer, staff, coupon_kwargs, message):
    product = await factory.product(stock=10)
    await factory.coupon(code="NOPE", **coupon_kwargs)

    with pytest.raises(BadRequestError, match=message):
        await service.create(customer.id, [OrderLine(product.id, 1)], FulfillmentType.PICKUP, coupon_code="NOPE")


async def test_delivery_order_requires_customers_own_address(service, factory, customer, staff):
    product = await factory.product(stock=10)
    stranger = await factory.user(Role.CUSTOMER)
    foreign_address = await factory.address(stranger)

    with pytest.raises(BadRequestError, match="address is required"):
        await service.create(customer.id, [OrderLine(product.id, 1)], FulfillmentType.DELIVERY)
    with pytest.raises(NotFoundError):
        await service.create(
            customer.id, [OrderLine(product.id, 1)], FulfillmentType.DELIVERY, delivery_address_id=foreign_address.id
        )


async def test_inactive_or_unknown_products_are_not_found(service, factory, customer, staff):
    retired = await factory.product(stock=10, is_active=False)

    with pytest.raises(NotFoundError):
        await service.create(customer.id, [OrderLine(retired.id, 1)], FulfillmentType.PICKUP)
    with pytest.raises(NotFoundError):
        await service.create(customer.id, [OrderLine("missing", 1)], FulfillmentType.PICKUP)


def test_merge_lines_rejects_non_positive_quantities():
    with pytest.raises(BadRequestError):
        merge_lines([OrderLine("p1", 0)])
    assert [(l.product_id, l.quantity) for l in merge_lines([OrderLine("a", 1), OrderLine("b", 2), OrderLine("a", 3)])] == [
        ("a", 4), ("b", 2)
    ]


async def test_create_notifies_staff_after_commit(service, factory, customer, staff, session_factory, connection_manager):
    product = await factory.product(stock=5)

    order = await service.create(customer.id, [OrderLine(product.id, 1)], FulfillmentType.PICKUP)

    rooms = {room for room, event, _ in connection_manager.events(SocketEvent.NEW_ORDER.value)}
    assert rooms == {role_room(Role.ADMIN), role_room(Role.MANAGER), role_room(Role.SELLER)}
    payload = connection_manager.events(SocketEvent.NEW_ORDER.value)[0][2]
    assert payload["orderId"] == order.id
    assert payload["orderNumber"] == order.order_number

    staff_ids = [staff[Role.ADMIN].id, staff[Role.MANAGER].id, staff[Role.SELLER].id]
    assert await count(session_factory, Notification, Notification.user_id.in_(staff_ids)) == 3
    assert await count(session_factory, Notification, Notification.user_id == staff[Role.DELIVERY].id) == 0


async def test_status_update_follows_transition_table(service, factory, customer, staff, place_order, connection_manager):
    product = await factory.product(stock=5)
    order = await place_order(customer, [(product, 1)])
    manager = staff[Role.MANAGER]

    confirmed = await service.update_status(order.id, OrderStatus.CONFIRMED, manager.id, "Payment approved")

    assert confirmed.status == OrderStatus.CONFIRMED
    assert [h.status for h in confirmed.status_history] == [OrderStatus.PENDING, OrderStatus.CONFIRMED]
    assert connection_manager.events(SocketEvent.ORDER_STATUS_CHANGED.value, user_room(customer.id))

    with pytest.raises(InvalidTransitionError):
        await service.update_status(order.id, OrderStatus.DELIVERED, manager.id)
    assert (await service.get_order(order.id)).status == OrderStatus.CONFIRMED


async def test_terminal_statuses_have_no_exit(service, factory, customer, staff, place_order):
    product = await factory.product(stock=5)
    order = await place_order(customer, [(product, 1)])
    manager = staff[Role.MANAGER]
    await service.update_status(order.id, OrderStatus.CANCELLED, manager.id, "Out of season")

    for target in (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.REFUNDED):
        with pytest.raises(InvalidTransitionError):
            await service.update_status(order.id, target, manager.id)


async def test_staff_cancellation_releases_stock_and_picking(service, factory, customer, staff, place_order, session_factory):
    product = await factory.product(stock=5)
    order = await place_order(customer, [(product, 2)])

    cancelled = await service.update_status(order.id, OrderStatus.CANCELLED, staff[Role.ADMIN].id, "Fraud check")

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.cancel_reason == "Fraud check"
    assert cancelled.cancelled_at is not None
    assert cancelled.picking_order.status == PickingStatus.CANCELLED
    stored = await factory.get(Product, product.id)
    assert (stored.stock, stored.sales_count) == (5, 0)
    returns = await count(
        session_factory, InventoryMovement,
        InventoryMovement.reference_id == order.id, InventoryMovement.type == MovementType.RETURN,
    )
    assert returns == 1


async def test_customer_cancel_restores_stock_and_counters(service, factory, customer, staff, place_order, connection_manager):
    first = await factory.product(stock=5)
    second = await factory.product(stock=4)
    order = await place_order(customer, [(first, 2), (second, 4)])
    connection_manager.clear()

    cancelled = await service.cancel(order.id, customer.id)

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.cancel_reason == "Cancelled by customer"
    assert (await factory.get(Product, first.id)).stock == 5
    assert (await factory.get(Product, second.id)).stock == 4
    assert (await factory.get(Product, second.id)).sales_count == 0
    assert (await factory.get(PickingOrder, order.picking_order.id)).status == PickingStatus.CANCELLED
    assert {room for room, _, _ in connection_manager.events(SocketEvent.ORDER_CANCELLED.value)} == {
        role_room(Role.ADMIN), role_room(Role.MANAGER), role_room(Role.SELLER)
    }


async def test_cancel_guards(service, factory, customer, staff, place_order):
    product = await factory.product(stock=5)
    order = await place_order(customer, [(product, 1)])
    other = await factory.user(Role.CUSTOMER)

    with pytest.raises(ForbiddenError):
        await service.cancel(order.id, other.id)
    with pytest.raises(NotFoundError):
        await service.cancel("missing", customer.id)

    await service.update_status(order.id, OrderStatus.CONFIRMED, staff[Role.MANAGER].id)
    await service.update_status(order.id, OrderStatus.PROCESSING, staff[Role.MANAGER].id)
    with pytest.raises(BadRequestError, match="cannot be cancelled"):
        await service.cancel(order.id, customer.id)
    assert (await factory.get(Product, product.id)).stock == 4


async def test_failed_create_discards_outbox(uow_factory, factory, customer, connection_manager):
    with pytest.raises(RuntimeError):
        async with uow_factory() as uow:
            uow.emit(user_room(customer.id), SocketEvent.ORDER_STATUS_CHANGED.value, {"orderId": "x"})
            raise RuntimeError("boom")

    assert connection_manager.sent == []


async def test_unit_of_work_without_commit_sends_nothing(uow_factory, customer, connection_manager):
    async with uow_factory() as uow:
        uow.emit(user_room(customer.id), SocketEvent.ORDER_STATUS_CHANGED.value, {"orderId": "x"})

    assert connection_manager.sent == []


async def test_read_results_stay_usable_after_the_call(service, factory, customer, staff, place_order):
    product = await factory.product(stock=5, name="Cafe torrado")
    placed = await place_order(customer, [(product, 2)])

    fetched = await service.get_order(placed.id)

    assert fetched.status == OrderStatus.PENDING
    assert fetched.order_number == placed.order_number
    assert [(item.product_name, item.quantity) for item in fetched.items] == [("Cafe torrado", 2)]
    assert fetched.picking_order.status == PickingStatus.PENDING
    assert [h.notes for h in fetched.status_history] == ["Order created"]

    listed = await service.list_customer_orders(customer.id)
    assert [(o.id, o.total) for o in listed["items"]] == [(placed.id, placed.total)]


async def test_tracking_and_listing(service, factory, customer, staff, place_order):
    product = await factory.product(stock=10)
    first = await place_order(customer, [(product, 1)])
    await place_order(customer, [(product, 1)])
    await service.update_status(first.id, OrderStatus.CONFIRMED, staff[Role.MANAGER].id)

    tracking = await service.get_tracking(first.id)
    assert tracking["status"] == OrderStatus.CONFIRMED
    assert [h.status for h in tracking["history"]] == [OrderStatus.PENDING, OrderStatus.CONFIRMED]

    mine = await service.list_customer_orders(customer.id)
    assert mine["total"] == 2
    confirmed = await service.list_orders(status=OrderStatus.CONFIRMED)
    assert [o.id for o in confirmed["items"]] == [first.id]
    by_number = await service.list_orders(search=first.order_number)
    assert by_number["total"] == 1
