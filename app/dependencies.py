from typing import AsyncGenerator, Callable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import async_session
from app.services.delivery_service import DeliveryService
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.picking_service import PickingService
from app.services.sale_service import SaleService
from app.services.stock_ledger import InventoryService
from app.services.unit_of_work import UnitOfWork, unit_of_work_factory
from app.services.websockets.manager import ConnectionManager, manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_connection_manager() -> ConnectionManager:
    return manager


def get_uow_factory(
    connection_manager: ConnectionManager = Depends(get_connection_manager),
) -> Callable[[], UnitOfWork]:
    """Units of work share the app session factory; events go to the global socket manager."""
    return unit_of_work_factory(async_session, connection_manager)


def get_order_service(uow_factory=Depends(get_uow_factory)) -> OrderService:
    return OrderService(uow_factory)


def get_inventory_service(uow_factory=Depends(get_uow_factory)) -> InventoryService:
    return InventoryService(uow_factory)


def get_picking_service(uow_factory=Depends(get_uow_factory)) -> PickingService:
    return PickingService(uow_factory)


def get_sale_service(uow_factory=Depends(get_uow_factory)) -> SaleService:
    return SaleService(uow_factory)


def get_delivery_service(uow_factory=Depends(get_uow_factory)) -> DeliveryService:
    return DeliveryService(uow_factory)


def get_notification_service(uow_factory=Depends(get_uow_factory)) -> NotificationService:
    return NotificationService(uow_factory)
