"""
Schemas for courier endpoints.
"""

from datetime import datetime
from typing import List, Optional

from app.core.enums import DeliveryStatus
from .base import BaseSchema
from .order import OrderBrief


class DeliveryAssign(BaseSchema):
    order_id: str
    delivery_person_id: str


class LocationUpdate(BaseSchema):
    latitude: float
    longitude: float


class DeliveryStatusUpdate(BaseSchema):
    status: DeliveryStatus
    failure_reason: Optional[str] = None


class DeliveryRate(BaseSchema):
    rating: int
    comment: Optional[str] = None


class LocationRead(BaseSchema):
    latitude: float
    longitude: float
    created_at: datetime


class DeliveryRead(BaseSchema):
    id: str
    order_id: str
    delivery_person_id: str
    status: DeliveryStatus
    current_latitude: Optional[float] = None
    current_longitude: Optional[float] = None
    picked_up_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    actual_minutes: Optional[int] = None
    failure_reason: Optional[str] = None
    rating: Optional[int] = None
    rating_comment: Optional[str] = None
    created_at: datetime
    order: Optional[OrderBrief] = None


class DeliveryTracking(BaseSchema):
    delivery: DeliveryRead
    location_history: List[LocationRead]
