"""
Schemas for the seller picking workflow.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from app.core.enums import PickingStatus
from .base import BaseSchema
from .order import OrderBrief, OrderDeliverySummary, OrderRead


class ProductBrief(BaseSchema):
    id: str
    sku: str
    name: str
    barcode: Optional[str] = None
    unit: str


class PickingItemRead(BaseSchema):
    id: str
    order_item_id: str
    product_id: str
    quantity: int
    is_picked: bool
    picked_quantity: int
    picked_at: Optional[datetime] = None
    notes: Optional[str] = None
    product: Optional[ProductBrief] = None


class PickingOrderRead(BaseSchema):
    id: str
    order_id: str
    seller_id: Optional[str] = None
    status: PickingStatus
    total_items: int
    picked_items: int
    assigned_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    items: List[PickingItemRead] = []
    order: Optional[OrderBrief] = None


class ScanRequest(BaseSchema):
    barcode: str = Field(..., min_length=1)


class ManualPickRequest(BaseSchema):
    notes: Optional[str] = None


class ScanProgress(BaseSchema):
    picked: int
    total: int
    all_picked: bool = Field(..., alias="allPicked")


class ScanResultRead(BaseSchema):
    success: bool
    message: str
    reason: Optional[str] = None
    item: Optional[PickingItemRead] = None
    progress: Optional[ScanProgress] = None
    expected_products: List[Dict[str, Any]] = Field(default_factory=list, alias="expectedProducts")


class CourierBrief(BaseSchema):
    id: str
    full_name: str
    phone: Optional[str] = None


class HandoffOrderRead(BaseSchema):
    order: OrderRead
    delivery: Optional[OrderDeliverySummary] = None
    courier: Optional[CourierBrief] = None
