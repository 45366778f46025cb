"""
Shared enums and constants used across the application.

Status enums double as the column types of the workflow models. The transition
tables below are the only place where allowed status edges are declared.
"""

from enum import Enum
from typing import Dict, FrozenSet


class Role(str, Enum):
    CUSTOMER = "CUSTOMER"
    SELLER = "SELLER"
    DELIVERY = "DELIVERY"
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"

    @property
    def room(self) -> str:
        return f"role:{self.value}"


# Roles alerted about new and cancelled orders
STAFF_ROLES = (Role.ADMIN, Role.MANAGER, Role.SELLER)
# Roles allowed to drive orders manually from the back office
BACK_OFFICE_ROLES = (Role.ADMIN, Role.MANAGER, Role.EMPLOYEE)
PICKING_ROLES = (Role.SELLER, Role.EMPLOYEE, Role.MANAGER, Role.ADMIN)


class OrderStatus(str, Enum):
    """Order lifecycle values used in both models and schemas"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class FulfillmentType(str, Enum):
    DELIVERY = "DELIVERY"
    PICKUP = "PICKUP"


class PickingStatus(str, Enum):
    PENDING = "PENDING"
    PICKING = "PICKING"
    PICKED = "PICKED"
    READY = "READY"
    CANCELLED = "CANCELLED"


class DeliveryStatus(str, Enum):
    ASSIGNED = "ASSIGNED"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    RETURNED = "RETURNED"


ACTIVE_DELIVERY_STATUSES = (DeliveryStatus.ASSIGNED, DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT)
FINISHED_DELIVERY_STATUSES = (DeliveryStatus.DELIVERED, DeliveryStatus.FAILED, DeliveryStatus.RETURNED)


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"
    RETURN = "RETURN"
    DAMAGE = "DAMAGE"
    TRANSFER = "TRANSFER"

    @property
    def sign(self) -> int:
        """+1 adds to stock, -1 removes, 0 sets an absolute value."""
        if self in (MovementType.IN, MovementType.RETURN):
            return 1
        if self is MovementType.ADJUSTMENT:
            return 0
        return -1


class ReferenceType(str, Enum):
    ORDER = "ORDER"
    SALE = "SALE"
    PURCHASE_ORDER = "PURCHASE_ORDER"


class CouponType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class NotificationType(str, Enum):
    ORDER_UPDATE = "ORDER_UPDATE"
    DELIVERY_UPDATE = "DELIVERY_UPDATE"
    PROMOTION = "PROMOTION"
    SYSTEM = "SYSTEM"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PIX = "PIX"
    TRANSFER = "TRANSFER"


class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PARTIAL = "PARTIAL"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class SocketEvent(str, Enum):
    """Event names pushed over (or accepted from) the notifications socket."""
    NEW_ORDER = "newOrder"
    ORDER_STATUS_CHANGED = "orderStatusChanged"
    ORDER_READY_FOR_PICKUP = "orderReadyForPickup"
    ORDER_CANCELLED = "orderCancelled"
    DELIVERY_ASSIGNED = "deliveryAssigned"
    MARK_AS_READ = "markAsRead"
    MARK_ALL_AS_READ = "markAllAsRead"
    NOTIFICATION_READ = "notificationRead"
    ALL_NOTIFICATIONS_READ = "allNotificationsRead"


#####################################################
############### Transition tables ###################
#####################################################

# Edges a back-office user may request through the status endpoint.
ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({
        OrderStatus.READY_FOR_PICKUP,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.READY_FOR_PICKUP: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

# Edges written by the picking and delivery coordinators when work changes hands.
# Keyed by the target status; values are the statuses the order may be leaving.
HANDOFF_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PROCESSING: frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED}),
    OrderStatus.READY_FOR_PICKUP: frozenset({OrderStatus.PROCESSING}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.PROCESSING, OrderStatus.READY_FOR_PICKUP}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
}

# Orders the customer may still cancel on their own.
CANCELLABLE_ORDER_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})

DELIVERY_TRANSITIONS: Dict[DeliveryStatus, FrozenSet[DeliveryStatus]] = {
    DeliveryStatus.ASSIGNED: frozenset({DeliveryStatus.PICKED_UP}),
    DeliveryStatus.PICKED_UP: frozenset({DeliveryStatus.IN_TRANSIT}),
    DeliveryStatus.IN_TRANSIT: frozenset({DeliveryStatus.DELIVERED, DeliveryStatus.FAILED}),
    DeliveryStatus.FAILED: frozenset({DeliveryStatus.RETURNED}),
    DeliveryStatus.DELIVERED: frozenset(),
    DeliveryStatus.RETURNED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[OrderStatus(current)]
