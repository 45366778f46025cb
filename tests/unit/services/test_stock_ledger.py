import pytest
from sqlalchemy import select

from app.core.enums import MovementType, PurchaseOrderStatus, ReferenceType, Role
from app.core.exceptions import BadRequestError, InsufficientStockError, NotFoundError
from app.models.inventory import InventoryMovement
from app.models.product import Product
from app.models.purchase_order import PurchaseOrder
from app.services.stock_ledger import InventoryService, StockLedger


@pytest.fixture
def service(uow_factory):
    return InventoryService(uow_factory)


@pytest.fixture
async def clerk(factory):
    return await factory.user(Role.EMPLOYEE)


async def movements_for(session_factory, product_id):
    async with session_factory() as session:
        result = await session.execute(
            select(InventoryMovement)
            .where(InventoryMovement.product_id == product_id)
            .order_by(InventoryMovement.created_at)
        )
        return list(result.scalars().all())


@pytest.mark.parametrize(
    "movement_type, quantity, expected",
    [
        (MovementType.IN, 5, 15),
        (MovementType.RETURN, 2, 12),
        (MovementType.OUT, 4, 6),
        (MovementType.DAMAGE, 1, 9),
        (MovementType.TRANSFER, 10, 0),
        (MovementType.ADJUSTMENT, 3, 3),
        (MovementType.ADJUSTMENT, 0, 0),
    ],
)
async def test_record_movement_applies_sign(service, factory, clerk, movement_type, quantity, expected):
    product = await factory.product(stock=10)

    movement = await service.record_movement(product.id, movement_type, quantity, clerk.id, "count")

    assert movement.previous_stock == 10
    assert movement.new_stock == expected
    assert movement.performed_by_id == clerk.id
    assert (await factory.get(Product, product.id)).stock == expected


async def test_out_beyond_stock_is_rejected_and_nothing_written(service, factory, clerk, session_factory):
    product = await factory.product(stock=3, name="Arroz 5kg")

    with pytest.raises(InsufficientStockError) as exc_info:
        await service.record_movement(product.id, MovementType.OUT, 4, clerk.id)

    assert exc_info.value.available == 3
    assert "Available: 3" in exc_info.value.message
    assert (await factory.get(Product, product.id)).stock == 3
    assert await movements_for(session_factory, product.id) == []


@pytest.mark.parametrize("movement_type, quantity", [(MovementType.IN, 0), (MovementType.OUT, -1), (MovementType.ADJUSTMENT, -2)])
async def test_record_movement_rejects_bad_quantities(service, factory, clerk, movement_type, quantity):
    product = await factory.product(stock=5)

    with pytest.raises(BadRequestError):
        await service.record_movement(product.id, movement_type, quantity, clerk.id)


async def test_record_movement_unknown_product(service, clerk):
    with pytest.raises(NotFoundError):
        await service.record_movement("missing", MovementType.IN, 1, clerk.id)


async def test_adjust_stock_signed_delta(service, factory, clerk, session_factory):
    product = await factory.product(stock=10)

    down = await service.adjust_stock(product.id, -4, "Shrinkage", clerk.id)
    up = await service.adjust_stock(product.id, 2, "Found on shelf", clerk.id)

    assert (down.type, down.quantity, down.previous_stock, down.new_stock) == (MovementType.ADJUSTMENT, 4, 10, 6)
    assert (up.quantity, up.previous_stock, up.new_stock) == (2, 6, 8)
    history = await movements_for(session_factory, product.id)
    assert [m.new_stock for m in history] == [6, 8]


async def test_adjust_stock_cannot_go_negative(service, factory, clerk):
    product = await factory.product(stock=2)

    with pytest.raises(InsufficientStockError, match="negative stock") as exc_info:
        await service.adjust_stock(product.id, -3, "Broken", clerk.id)
    assert (exc_info.value.product_id, exc_info.value.available) == (product.id, 2)
    with pytest.raises(BadRequestError):
        await service.adjust_stock(product.id, 0, "Nothing", clerk.id)


async def test_ledger_rows_chain_previous_and_new_stock(service, factory, clerk, session_factory):
    product = await factory.product(stock=0)

    await service.record_movement(product.id, MovementType.IN, 10, clerk.id)
    await service.record_movement(product.id, MovementType.OUT, 3, clerk.id)
    await service.record_movement(product.id, MovementType.DAMAGE, 2, clerk.id)

    history = await movements_for(session_factory, product.id)
    assert [(m.previous_stock, m.new_stock) for m in history] == [(0, 10), (10, 7), (7, 5)]
    assert (await factory.get(Product, product.id)).stock == history[-1].new_stock


async def test_stock_ledger_inside_caller_unit_of_work_rolls_back(uow_factory, factory, clerk):
    product = await factory.product(stock=5)

    with pytest.raises(InsufficientStockError):
        async with uow_factory() as uow:
            ledger = StockLedger(uow)
            await ledger.record_movement(product.id, MovementType.OUT, 2, clerk.id)
            await ledger.record_movement(product.id, MovementType.OUT, 4, clerk.id)
            await uow.commit()

    assert (await factory.get(Product, product.id)).stock == 5


async def test_receive_purchase_order(service, factory, clerk, session_factory):
    first = await factory.product(stock=1)
    second = await factory.product(stock=0)
    purchase_order = await factory.purchase_order([(first, 10), (second, 5)])
    first_item, second_item = sorted(purchase_order.items, key=lambda i: i.product_id == second.id)

    received = await service.receive_purchase_order(
        purchase_order.id, [(first_item.id, 10), (second_item.id, 4)], clerk.id
    )

    assert received.status == PurchaseOrderStatus.RECEIVED
    assert received.received_at is not None
    assert (await factory.get(Product, first.id)).stock == 11
    assert (await factory.get(Product, second.id)).stock == 4
    movement = (await movements_for(session_factory, second.id))[0]
    assert movement.type == MovementType.IN
    assert movement.reference_type == ReferenceType.PURCHASE_ORDER
    assert movement.reference_id == purchase_order.id


async def test_receive_purchase_order_only_once(service, factory, clerk):
    product = await factory.product(stock=0)
    purchase_order = await factory.purchase_order([(product, 3)])
    item_id = purchase_order.items[0].id

    await service.receive_purchase_order(purchase_order.id, [(item_id, 3)], clerk.id)
    with pytest.raises(BadRequestError, match="already been received"):
        await service.receive_purchase_order(purchase_order.id, [(item_id, 3)], clerk.id)

    assert (await factory.get(Product, product.id)).stock == 3
    assert (await factory.get(PurchaseOrder, purchase_order.id)).status == PurchaseOrderStatus.RECEIVED


async def test_low_stock_orders_by_criticality(service, factory):
    await factory.product(stock=8, min_stock=5, name="Healthy")
    half = await factory.product(stock=5, min_stock=10, name="Half")
    empty = await factory.product(stock=0, min_stock=4, name="Empty")

    rows = await service.low_stock()

    assert [row["product_id"] for row in rows] == [empty.id, half.id]
    assert rows[0]["deficit"] == 4
    assert rows[1]["deficit"] == 5


async def test_get_stock(service, factory):
    product = await factory.product(stock=2, min_stock=3)

    stock = await service.get_stock(product.id)

    assert stock["stock"] == 2
    assert stock["is_low_stock"] is True
    with pytest.raises(NotFoundError):
        await service.get_stock("missing")


async def test_list_movements_filters_by_product_and_type(service, factory, clerk):
    product = await factory.product(stock=10)
    other = await factory.product(stock=10)
    await service.record_movement(product.id, MovementType.IN, 1, clerk.id)
    await service.record_movement(product.id, MovementType.OUT, 1, clerk.id)
    await service.record_movement(other.id, MovementType.IN, 1, clerk.id)

    page = await service.list_movements(product_id=product.id, movement_type=MovementType.OUT)

    assert page["total"] == 1
    assert page["items"][0].type == MovementType.OUT


async def test_stock_listing_filters_and_pages(service, factory):
    full = await factory.product(stock=40, min_stock=5, name="Arroz 5kg", sku="ARZ-5")
    short = await factory.product(stock=2, min_stock=10, name="Arroz 1kg", sku="ARZ-1")
    await factory.product(stock=0, min_stock=0, name="Sal grosso")

    everything = await service.list_stock(page=1, limit=2)
    rice = await service.list_stock(search="arroz")
    low = await service.list_stock(low_stock=True)
    by_sku = await service.list_stock(search="ARZ-5")

    assert everything["total"] == 3
    assert len(everything["items"]) == 2
    assert everything["has_next"] is True
    assert [p.id for p in rice["items"]] == [short.id, full.id]
    assert [p.id for p in low["items"]] == [short.id]
    assert low["items"][0].is_low_stock is True
    assert [p.id for p in by_sku["items"]] == [full.id]


async def test_barcode_lookup(service, factory):
    product = await factory.product(stock=3, barcode="7894900011517", name="Refrigerante 2L")

    found = await service.get_by_barcode(" 7894900011517 ")

    assert (found.id, found.name, found.stock) == (product.id, "Refrigerante 2L", 3)
    with pytest.raises(NotFoundError, match="barcode"):
        await service.get_by_barcode("0000000000000")
