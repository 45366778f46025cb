"""
Core module exports.
"""
from .enums import (
    Role,
    OrderStatus,
    FulfillmentType,
    PickingStatus,
    DeliveryStatus,
    MovementType,
    ReferenceType,
    NotificationType,
    SocketEvent,
)

from .exceptions import (
    BaseServiceError,
    NotFoundError,
    ConflictError,
    AlreadyClaimedError,
    BadRequestError,
    InsufficientStockError,
    InvalidTransitionError,
    ForbiddenError,
)

from .utils import (
    paginate_query,
    to_money,
)
