"""Stock ledger routes."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
import logging

from app.core.enums import MovementType, BACK_OFFICE_ROLES
from app.core.security import require_roles
from app.dependencies import get_inventory_service
from app.models.user import User
from app.schemas.base import Page
from app.schemas.inventory import (
    LowStockRead,
    MovementCreate,
    MovementRead,
    ProductStockRead,
    PurchaseOrderRead,
    PurchaseOrderReceive,
    StockAdjust,
    StockRead,
)
from app.services.stock_ledger import InventoryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/inventory", tags=["inventory"])

back_office = require_roles(*BACK_OFFICE_ROLES)


@router.get("", response_model=Page[ProductStockRead])
async def list_stock(
    search: Optional[str] = Query(None, description="Match on name, SKU or barcode"),
    low_stock: bool = Query(False, description="Only products under their minimum"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(back_office),
    service: InventoryService = Depends(get_inventory_service),
):
    return await service.list_stock(search, low_stock, page, limit)


@router.get("/low-stock", response_model=List[LowStockRead])
async def low_stock(
    user: User = Depends(back_office),
    service: InventoryService = Depends(get_inventory_service),
):
    return await service.low_stock()


@router.get("/movements", response_model=Page[MovementRead])
async def list_movements(
    product_id: Optional[str] = Query(None),
    movement_type: Optional[MovementType] = Query(None, alias="type"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(back_office),
    service: InventoryService = Depends(get_inventory_service),
):
    return await service.list_movements(product_id, movement_type, start_date, end_date, page, limit)


@router.post("/movements", response_model=MovementRead, status_code=status.HTTP_201_CREATED)
async def create_movement(
    payload: MovementCreate,
    user: User = Depends(back_office),
    service: InventoryService = Depends(get_inventory_service),
):
    return await service.record_movement(payload.product_id, payload.type, payload.quantity, user.id, payload.reason)


@router.post("/adjust", response_model=MovementRead, status_code=status.HTTP_201_CREATED)
async def adjust_stock(
    payload: StockAdjust,
    user: User = Depends(back_office),
    service: InventoryService = Depends(get_inventory_service),
):
    return await service.adjust_stock(payload.product_id, payload.quantity, payload.reason, user.id)


@router.post("/purchase-orders/{purchase_order_id}/receive", response_model=PurchaseOrderRead)
async def receive_purchase_order(
    purchase_order_id: str,
    payload: PurchaseOrderReceive,
    user: User = Depends(back_office),
    service: InventoryService = Depends(get_inventory_service),
):
    received = [(item.item_id, item.received_quantity) for item in payload.items]
    return await service.receive_purchase_order(purchase_order_id, received, user.id)


@router.get("/{product_id}/stock", response_model=StockRead)
async def get_stock(
    product_id: str,
    user: User = Depends(back_office),
    service: InventoryService = Depends(get_inventory_service),
):
    return await service.get_stock(product_id)
