# tests/conftest.py
import itertools
from decimal import Decimal
from typing import Any, List, Optional, Tuple

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.enums import CouponType, FulfillmentType, Role
from app.core.security import create_access_token
from app.database import Base, build_sessionmaker
from app.dependencies import get_connection_manager, get_db, get_uow_factory
from app.main import app
from app.models.coupon import Coupon
from app.models.product import Product
from app.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from app.models.user import Address, User
from app.services.order_service import OrderLine, OrderService
from app.services.picking_service import PickingService
from app.services.unit_of_work import unit_of_work_factory
from app.services.websockets.manager import ConnectionManager

# In-memory SQLite shared by every session of a test through StaticPool
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

_sequence = itertools.count(1)


class RecordingConnectionManager(ConnectionManager):
    """ConnectionManager that remembers every room push, delivered or not."""

    def __init__(self):
        super().__init__()
        self.sent: List[Tuple[str, str, Any]] = []

    async def send_to_room(self, room: str, event: str, data: Any = None):
        self.sent.append((room, event, data))
        await super().send_to_room(room, event, data)

    def events(self, event: Optional[str] = None, room: Optional[str] = None) -> List[Tuple[str, str, Any]]:
        return [
            sent for sent in self.sent
            if (event is None or sent[1] == event) and (room is None or sent[0] == room)
        ]

    def clear(self):
        self.sent.clear()


class ModelFactory:
    """Persists fixture rows, each call in its own committed session."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def _save(self, *objects):
        async with self.session_factory() as session:
            session.add_all(objects)
            await session.commit()
        return objects[0]

    async def user(self, role: Role = Role.CUSTOMER, is_active: bool = True, **kwargs) -> User:
        n = next(_sequence)
        return await self._save(User(
            email=kwargs.pop("email", f"{Role(role).value.lower()}{n}@example.com"),
            first_name=kwargs.pop("first_name", f"{Role(role).value.title()} {n}"),
            role=role,
            is_active=is_active,
            **kwargs,
        ))

    async def address(self, user: User, **kwargs) -> Address:
        return await self._save(Address(
            user_id=user.id,
            street=kwargs.pop("street", "Rua das Flores"),
            number=kwargs.pop("number", "100"),
            city=kwargs.pop("city", "Curitiba"),
            is_default=kwargs.pop("is_default", True),
            **kwargs,
        ))

    async def product(
        self,
        stock: int = 10,
        price: str = "10.00",
        tax_rate: str = "0",
        barcode: Optional[str] = None,
        min_stock: int = 0,
        **kwargs,
    ) -> Product:
        n = next(_sequence)
        return await self._save(Product(
            sku=kwargs.pop("sku", f"SKU-{n:05d}"),
            barcode=barcode if barcode is not None else f"789{n:010d}",
            name=kwargs.pop("name", f"Product {n}"),
            unit=kwargs.pop("unit", "un"),
            price=Decimal(price),
            tax_rate=Decimal(tax_rate),
            stock=stock,
            min_stock=min_stock,
            sales_count=kwargs.pop("sales_count", 0),
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        ))

    async def coupon(self, code: str = "SAVE10", type: CouponType = CouponType.PERCENTAGE,
                     value: str = "10", **kwargs) -> Coupon:
        return await self._save(Coupon(
            code=code,
            type=type,
            value=Decimal(value),
            current_uses=kwargs.pop("current_uses", 0),
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        ))

    async def purchase_order(self, lines: List[Tuple[Product, int]]) -> PurchaseOrder:
        n = next(_sequence)
        return await self._save(PurchaseOrder(
            order_number=f"PO-{n:05d}",
            supplier_name="Acme Supplies",
            items=[PurchaseOrderItem(product_id=p.id, quantity=qty, received_quantity=0) for p, qty in lines],
        ))

    async def get(self, model, entity_id: str):
        """Fresh read in a new session, detached after return."""
        async with self.session_factory() as session:
            return await session.get(model, entity_id)


@pytest.fixture
async def test_engine():
    """Create and configure the test database engine (function-scoped)."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_sessionmaker(test_engine)


@pytest.fixture
async def db_session(session_factory):
    """Provide a database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def connection_manager():
    return RecordingConnectionManager()


@pytest.fixture
def uow_factory(session_factory, connection_manager):
    return unit_of_work_factory(session_factory, connection_manager)


@pytest.fixture
def factory(session_factory):
    return ModelFactory(session_factory)


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, Role(user.role))}"}
    return _headers


@pytest.fixture
async def client(session_factory, uow_factory, connection_manager):
    """HTTP client bound to the app with the test database and socket manager."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_uow_factory] = lambda: uow_factory
    app.dependency_overrides[get_connection_manager] = lambda: connection_manager

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


#####################################################
############ Common workflow fixtures ###############
#####################################################

@pytest.fixture
async def staff(factory):
    """One active user per back-office role that receives role fan-out."""
    return {
        Role.ADMIN: await factory.user(Role.ADMIN),
        Role.MANAGER: await factory.user(Role.MANAGER),
        Role.SELLER: await factory.user(Role.SELLER),
        Role.DELIVERY: await factory.user(Role.DELIVERY),
        Role.EMPLOYEE: await factory.user(Role.EMPLOYEE),
    }


@pytest.fixture
async def customer(factory):
    return await factory.user(Role.CUSTOMER)


@pytest.fixture
async def customer_address(factory, customer):
    return await factory.address(customer)


@pytest.fixture
def place_order(uow_factory):
    """Create an order through the service; defaults to PICKUP."""
    async def _place(customer: User, lines, fulfillment_type=FulfillmentType.PICKUP, **kwargs):
        service = OrderService(uow_factory)
        items = [OrderLine(product.id, quantity) for product, quantity in lines]
        return await service.create(customer.id, items, fulfillment_type, **kwargs)
    return _place


@pytest.fixture
def make_ready(uow_factory):
    """Walk an order through claim, manual picks and completion by the given seller."""
    async def _ready(order, seller: User):
        picking = PickingService(uow_factory)
        claimed = await picking.accept_order(order.id, seller.id)
        for item in claimed.items:
            await picking.mark_item_picked(item.id, seller.id)
        return await picking.complete_picking_order(claimed.id, seller.id)
    return _ready
