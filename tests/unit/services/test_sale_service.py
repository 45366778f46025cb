from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.enums import MovementType, PaymentMethod, ReferenceType, Role
from app.core.exceptions import BadRequestError, ConflictError, ForbiddenError, InsufficientStockError, NotFoundError
from app.models.inventory import InventoryMovement
from app.models.product import Product
from app.models.sale import Sale
from app.services.picking_service import PickingService
from app.services.sale_service import SaleLine, SaleService


@pytest.fixture
def service(uow_factory):
    return SaleService(uow_factory)


@pytest.fixture
async def seller(staff):
    return staff[Role.SELLER]


async def test_create_sale_totals_and_change(service, factory, seller, session_factory):
    coffee = await factory.product(stock=5, price="10.00", tax_rate="0.10", name="Cafe 500g")
    bread = await factory.product(stock=5, price="4.50", name="Pao de forma")

    sale = await service.create_sale(
        seller.id,
        [SaleLine(coffee.id, 2), SaleLine(bread.id, 1, discount=Decimal("0.50"))],
        PaymentMethod.CASH,
        discount=Decimal("1.00"),
        paid_amount=Decimal("50"),
    )

    assert sale.order_number.startswith("POS-")
    assert sale.subtotal == Decimal("24.00")
    assert sale.tax == Decimal("2.00")
    assert sale.total == Decimal("25.00")
    assert sale.change == Decimal("25.00")
    assert sale.is_suspended is False
    assert [item.total for item in sale.items] == [Decimal("20.00"), Decimal("4.00")]

    stored = await factory.get(Product, coffee.id)
    assert (stored.stock, stored.sales_count) == (3, 2)
    async with session_factory() as session:
        movements = (await session.execute(
            select(InventoryMovement).where(InventoryMovement.reference_id == sale.id)
        )).scalars().all()
    assert {m.type for m in movements} == {MovementType.OUT}
    assert {m.reference_type for m in movements} == {ReferenceType.SALE}
    assert len(movements) == 2


async def test_paid_amount_defaults_to_total(service, factory, seller):
    product = await factory.product(stock=1, price="7.25")

    sale = await service.create_sale(seller.id, [SaleLine(product.id, 1)], PaymentMethod.PIX)

    assert sale.paid_amount == sale.total == Decimal("7.25")
    assert sale.change == Decimal("0.00")


async def test_underpaid_sale_is_rejected(service, factory, seller):
    product = await factory.product(stock=3, price="10.00")

    with pytest.raises(BadRequestError, match="lower than the total"):
        await service.create_sale(seller.id, [SaleLine(product.id, 2)], PaymentMethod.CASH, paid_amount=Decimal("19.99"))

    assert (await factory.get(Product, product.id)).stock == 3


async def test_sale_beyond_stock_writes_nothing(service, factory, seller, session_factory):
    product = await factory.product(stock=2, name="Feijao 1kg")

    with pytest.raises(InsufficientStockError, match="Insufficient stock") as exc_info:
        await service.create_sale(seller.id, [SaleLine(product.id, 1), SaleLine(product.id, 2)], PaymentMethod.CASH)
    assert (exc_info.value.product_id, exc_info.value.available) == (product.id, 2)

    assert (await factory.get(Product, product.id)).stock == 2
    async with session_factory() as session:
        assert (await session.execute(select(Sale))).scalars().all() == []


async def test_sale_input_validation(service, factory, seller):
    product = await factory.product(stock=5)

    with pytest.raises(BadRequestError):
        await service.create_sale(seller.id, [], PaymentMethod.CASH)
    with pytest.raises(BadRequestError):
        await service.create_sale(seller.id, [SaleLine(product.id, 0)], PaymentMethod.CASH)
    with pytest.raises(NotFoundError):
        await service.create_sale(seller.id, [SaleLine("missing", 1)], PaymentMethod.CASH)
    with pytest.raises(BadRequestError, match="Discount"):
        await service.create_sale(seller.id, [SaleLine(product.id, 1)], PaymentMethod.CASH, discount=Decimal("99"))


async def test_suspend_and_resume(service, factory, seller):
    product = await factory.product(stock=5)
    rival = await factory.user(Role.SELLER)
    sale = await service.create_sale(seller.id, [SaleLine(product.id, 1)], PaymentMethod.DEBIT_CARD)

    with pytest.raises(ForbiddenError):
        await service.suspend_sale(sale.id, rival.id)
    with pytest.raises(ConflictError, match="not suspended"):
        await service.resume_sale(sale.id, seller.id)

    assert (await service.suspend_sale(sale.id, seller.id)).is_suspended is True
    with pytest.raises(ConflictError, match="already suspended"):
        await service.suspend_sale(sale.id, seller.id)
    # managers act without an ownership check
    assert (await service.resume_sale(sale.id)).is_suspended is False
    with pytest.raises(NotFoundError):
        await service.suspend_sale("missing")


async def test_list_sales_is_per_seller(service, factory, seller):
    product = await factory.product(stock=5)
    rival = await factory.user(Role.SELLER)
    mine = await service.create_sale(seller.id, [SaleLine(product.id, 1)], PaymentMethod.CASH)
    await service.create_sale(rival.id, [SaleLine(product.id, 1)], PaymentMethod.CASH)

    page = await service.list_sales(seller.id)

    assert page["total"] == 1
    assert page["items"][0].id == mine.id


async def test_get_sale_checks_owner(service, factory, seller):
    product = await factory.product(stock=5)
    rival = await factory.user(Role.SELLER)
    sale = await service.create_sale(seller.id, [SaleLine(product.id, 2)], PaymentMethod.PIX)

    fetched = await service.get_sale(sale.id, seller.id)

    assert fetched.order_number == sale.order_number
    assert [(item.product_id, item.quantity) for item in fetched.items] == [(product.id, 2)]
    assert (await service.get_sale(sale.id)).id == sale.id
    with pytest.raises(ForbiddenError):
        await service.get_sale(sale.id, rival.id)
    with pytest.raises(NotFoundError):
        await service.get_sale("missing")


async def test_suspended_sales_are_listed_per_seller(service, factory, seller):
    product = await factory.product(stock=10)
    rival = await factory.user(Role.SELLER)
    parked = await service.create_sale(seller.id, [SaleLine(product.id, 1)], PaymentMethod.CASH)
    await service.create_sale(seller.id, [SaleLine(product.id, 1)], PaymentMethod.CASH)
    other = await service.create_sale(rival.id, [SaleLine(product.id, 1)], PaymentMethod.CASH)
    await service.suspend_sale(parked.id, seller.id)
    await service.suspend_sale(other.id, rival.id)

    suspended = await service.list_suspended(seller.id)

    assert [sale.id for sale in suspended] == [parked.id]
    assert suspended[0].is_suspended is True


async def test_seller_stats_for_the_day(service, factory, seller, customer, place_order, uow_factory):
    coffee = await factory.product(stock=10, price="10.00")
    bread = await factory.product(stock=10, price="4.50")
    first = await service.create_sale(seller.id, [SaleLine(coffee.id, 2)], PaymentMethod.CASH)
    await service.create_sale(seller.id, [SaleLine(bread.id, 1)], PaymentMethod.CASH)
    parked = await service.create_sale(seller.id, [SaleLine(coffee.id, 1)], PaymentMethod.CASH)
    await service.suspend_sale(parked.id, seller.id)
    order = await place_order(customer, [(bread, 1)])
    await PickingService(uow_factory).accept_order(order.id, seller.id)

    stats = await service.seller_stats(seller.id, now=first.created_at)

    assert stats == {
        "today_sales": Decimal("24.50"),
        "today_orders": 2,
        "average_ticket": Decimal("12.25"),
        "items_sold": 3,
        "pending_picking_orders": 1,
    }

    tomorrow = await service.seller_stats(seller.id, now=first.created_at + timedelta(days=1))
    assert (tomorrow["today_orders"], tomorrow["today_sales"], tomorrow["average_ticket"]) == (0, Decimal("0.00"), Decimal("0.00"))
    assert tomorrow["pending_picking_orders"] == 1
