"""
Schemas for point-of-sale endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from app.core.enums import PaymentMethod
from .base import BaseSchema


class SaleItemCreate(BaseSchema):
    product_id: str
    quantity: int = Field(..., ge=1)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    discount: Optional[Decimal] = Field(None, ge=0)


class SaleCreate(BaseSchema):
    items: List[SaleItemCreate] = Field(..., min_length=1)
    payment_method: PaymentMethod
    customer_id: Optional[str] = None
    discount: Optional[Decimal] = Field(None, ge=0)
    paid_amount: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class SaleItemRead(BaseSchema):
    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    discount: Decimal
    total: Decimal


class SaleRead(BaseSchema):
    id: str
    order_number: str
    seller_id: str
    customer_id: Optional[str] = None
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal
    payment_method: PaymentMethod
    paid_amount: Decimal
    change: Decimal
    is_suspended: bool
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    items: List[SaleItemRead] = []


class SellerStatsRead(BaseSchema):
    today_sales: Decimal
    today_orders: int
    average_ticket: Decimal
    items_sold: int
    pending_picking_orders: int
