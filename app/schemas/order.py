"""
Schemas for order endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from app.core.enums import OrderStatus, FulfillmentType, DeliveryStatus, PickingStatus
from .base import BaseSchema, TimestampedSchema


class OrderItemCreate(BaseSchema):
    product_id: str
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = None


class OrderCreate(BaseSchema):
    items: List[OrderItemCreate] = Field(..., min_length=1)
    fulfillment_type: FulfillmentType
    delivery_address_id: Optional[str] = None
    coupon_code: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('coupon_code', mode='before')
    @classmethod
    def blank_coupon_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class OrderStatusUpdate(BaseSchema):
    status: OrderStatus
    notes: Optional[str] = None


class OrderCancel(BaseSchema):
    reason: Optional[str] = None


class OrderItemRead(BaseSchema):
    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    notes: Optional[str] = None


class OrderStatusHistoryRead(BaseSchema):
    id: str
    status: OrderStatus
    changed_by: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class OrderBrief(BaseSchema):
    id: str
    order_number: str
    customer_id: str
    status: OrderStatus
    fulfillment_type: FulfillmentType
    total: Decimal
    delivery_address_id: Optional[str] = None
    created_at: datetime


class OrderPickingSummary(BaseSchema):
    id: str
    seller_id: Optional[str] = None
    status: PickingStatus
    total_items: int
    picked_items: int
    completed_at: Optional[datetime] = None


class OrderDeliverySummary(BaseSchema):
    id: str
    delivery_person_id: str
    status: DeliveryStatus
    current_latitude: Optional[float] = None
    current_longitude: Optional[float] = None
    picked_up_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None


class OrderRead(TimestampedSchema):
    id: str
    order_number: str
    customer_id: str
    seller_id: Optional[str] = None
    delivery_person_id: Optional[str] = None
    delivery_address_id: Optional[str] = None
    coupon_id: Optional[str] = None
    status: OrderStatus
    fulfillment_type: FulfillmentType
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    discount: Decimal
    total: Decimal
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    items: List[OrderItemRead] = []


class OrderDetail(OrderRead):
    status_history: List[OrderStatusHistoryRead] = []
    picking_order: Optional[OrderPickingSummary] = None
    delivery: Optional[OrderDeliverySummary] = None


class OrderTracking(BaseSchema):
    id: str
    order_number: str
    status: OrderStatus
    created_at: datetime
    delivered_at: Optional[datetime] = None
    history: List[OrderStatusHistoryRead]
