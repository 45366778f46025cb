from .user import User, Address
from .product import Product
from .inventory import InventoryMovement
from .coupon import Coupon
from .cart import Cart, CartItem
from .order import Order, OrderItem, OrderStatusHistory
from .picking import PickingOrder, PickingItem
from .delivery import Delivery, DeliveryLocationHistory
from .notification import Notification, NotificationPreferences
from .sale import Sale, SaleItem
from .purchase_order import PurchaseOrder, PurchaseOrderItem

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'User',
    'Address',
    'Product',
    'InventoryMovement',
    'Coupon',
    'Cart',
    'CartItem',
    'Order',
    'OrderItem',
    'OrderStatusHistory',
    'PickingOrder',
    'PickingItem',
    'Delivery',
    'DeliveryLocationHistory',
    'Notification',
    'NotificationPreferences',
    'Sale',
    'SaleItem',
    'PurchaseOrder',
    'PurchaseOrderItem',
]
