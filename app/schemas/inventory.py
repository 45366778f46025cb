"""
Schemas for stock ledger endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from app.core.enums import MovementType, ReferenceType, PurchaseOrderStatus
from .base import BaseSchema


class MovementCreate(BaseSchema):
    product_id: str
    type: MovementType
    quantity: int = Field(..., ge=0)
    reason: Optional[str] = None


class StockAdjust(BaseSchema):
    product_id: str
    quantity: int = Field(..., description="Signed change applied to current stock")
    reason: str = Field(..., min_length=1)

    @field_validator('quantity')
    @classmethod
    def non_zero(cls, v):
        if v == 0:
            raise ValueError('Adjustment quantity must not be zero')
        return v


class MovementRead(BaseSchema):
    id: str
    product_id: str
    type: MovementType
    quantity: int
    previous_stock: int
    new_stock: int
    reason: Optional[str] = None
    performed_by_id: Optional[str] = None
    reference_id: Optional[str] = None
    reference_type: Optional[ReferenceType] = None
    created_at: datetime


class StockRead(BaseSchema):
    product_id: str
    sku: str
    name: str
    unit: str
    stock: int
    min_stock: int
    is_low_stock: bool


class LowStockRead(BaseSchema):
    product_id: str
    sku: str
    name: str
    unit: str
    stock: int
    min_stock: int
    deficit: int


class ReceivedItem(BaseSchema):
    item_id: str
    received_quantity: int = Field(..., ge=0)


class PurchaseOrderReceive(BaseSchema):
    items: List[ReceivedItem] = Field(..., min_length=1)


class PurchaseOrderItemRead(BaseSchema):
    id: str
    product_id: str
    quantity: int
    received_quantity: int


class PurchaseOrderRead(BaseSchema):
    id: str
    order_number: str
    status: PurchaseOrderStatus
    received_at: Optional[datetime] = None
    items: List[PurchaseOrderItemRead] = []


class ProductStockRead(BaseSchema):
    """Stock listing row and POS barcode lookup result."""
    id: str
    sku: str
    barcode: Optional[str] = None
    name: str
    unit: str
    price: Decimal
    tax_rate: Decimal
    stock: int
    min_stock: int
    is_low_stock: bool
    is_active: bool
