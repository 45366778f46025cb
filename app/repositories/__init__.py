from .base import BaseRepository
from .user_repository import UserRepository
from .order_repository import OrderRepository
from .stock_repository import StockRepository
from .picking_repository import PickingRepository
from .delivery_repository import DeliveryRepository
from .notification_repository import NotificationRepository
from .sale_repository import SaleRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "OrderRepository",
    "StockRepository",
    "PickingRepository",
    "DeliveryRepository",
    "NotificationRepository",
    "SaleRepository",
]
