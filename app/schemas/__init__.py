"""
Schema exports for the application.
"""

# Base schemas
from .base import BaseSchema, TimestampedSchema, Page

# Order schemas
from .order import (
    OrderCreate,
    OrderItemCreate,
    OrderStatusUpdate,
    OrderCancel,
    OrderRead,
    OrderDetail,
    OrderTracking,
)

# Picking and POS schemas
from .picking import PickingOrderRead, PickingItemRead, ScanRequest, ManualPickRequest, ScanResultRead, HandoffOrderRead
from .sale import SaleCreate, SaleRead, SellerStatsRead

# Stock ledger schemas
from .inventory import (
    MovementCreate,
    MovementRead,
    StockAdjust,
    StockRead,
    LowStockRead,
    ProductStockRead,
    PurchaseOrderReceive,
    PurchaseOrderRead,
)

# Courier schemas
from .delivery import DeliveryAssign, DeliveryRead, DeliveryRate, DeliveryStatusUpdate, DeliveryTracking, LocationUpdate

# Notification schemas
from .notification import (
    NotificationRead,
    UnreadCount,
    MarkAllReadResult,
    NotificationPreferencesRead,
    NotificationPreferencesUpdate,
)
