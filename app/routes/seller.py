"""Seller routes - picking queue, barcode picking and the POS counter."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
import logging

from app.core.enums import Role, PICKING_ROLES
from app.core.security import require_roles
from app.dependencies import get_inventory_service, get_picking_service, get_sale_service
from app.models.user import User
from app.schemas.base import Page
from app.schemas.inventory import ProductStockRead
from app.schemas.picking import HandoffOrderRead, ManualPickRequest, PickingOrderRead, ScanRequest, ScanResultRead
from app.schemas.sale import SaleCreate, SaleRead, SellerStatsRead
from app.services.picking_service import PickingService
from app.services.sale_service import SaleLine, SaleService
from app.services.stock_ledger import InventoryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/seller", tags=["seller"])

seller_roles = require_roles(*PICKING_ROLES)


@router.get("/orders/pending", response_model=List[PickingOrderRead])
async def pending_orders(
    user: User = Depends(seller_roles),
    service: PickingService = Depends(get_picking_service),
):
    return await service.list_pending()


@router.get("/orders/ready", response_model=List[HandoffOrderRead])
async def orders_awaiting_handoff(
    user: User = Depends(seller_roles),
    service: PickingService = Depends(get_picking_service),
):
    return await service.list_awaiting_handoff()


@router.get("/stats", response_model=SellerStatsRead)
async def seller_stats(
    user: User = Depends(seller_roles),
    service: SaleService = Depends(get_sale_service),
):
    return await service.seller_stats(user.id)


@router.get("/products/barcode/{barcode}", response_model=ProductStockRead)
async def product_by_barcode(
    barcode: str,
    user: User = Depends(seller_roles),
    service: InventoryService = Depends(get_inventory_service),
):
    return await service.get_by_barcode(barcode)


@router.post("/orders/{order_id}/accept", response_model=PickingOrderRead)
async def accept_order(
    order_id: str,
    user: User = Depends(seller_roles),
    service: PickingService = Depends(get_picking_service),
):
    return await service.accept_order(order_id, user.id)


@router.get("/picking", response_model=List[PickingOrderRead])
async def my_picking_orders(
    user: User = Depends(seller_roles),
    service: PickingService = Depends(get_picking_service),
):
    return await service.list_mine(user.id)


@router.get("/picking/{picking_order_id}", response_model=PickingOrderRead)
async def get_picking_order(
    picking_order_id: str,
    user: User = Depends(seller_roles),
    service: PickingService = Depends(get_picking_service),
):
    return await service.get_picking_order(picking_order_id)


@router.post("/picking/{picking_order_id}/scan", response_model=ScanResultRead)
async def scan_item(
    picking_order_id: str,
    payload: ScanRequest,
    user: User = Depends(seller_roles),
    service: PickingService = Depends(get_picking_service),
):
    result = await service.scan_item(picking_order_id, payload.barcode, user.id)
    # Mismatches are a 200 with success=false, not an error status
    return ScanResultRead.model_validate(result)


@router.post("/picking/{picking_item_id}/manual-pick", response_model=PickingOrderRead)
async def manual_pick(
    picking_item_id: str,
    payload: Optional[ManualPickRequest] = None,
    user: User = Depends(seller_roles),
    service: PickingService = Depends(get_picking_service),
):
    return await service.mark_item_picked(picking_item_id, user.id, payload.notes if payload else None)


@router.post("/picking/{picking_order_id}/complete", response_model=PickingOrderRead)
async def complete_picking(
    picking_order_id: str,
    user: User = Depends(seller_roles),
    service: PickingService = Depends(get_picking_service),
):
    return await service.complete_picking_order(picking_order_id, user.id)


#####################################################
################### POS sales #######################
#####################################################

@router.post("/sales", response_model=SaleRead, status_code=status.HTTP_201_CREATED)
async def create_sale(
    payload: SaleCreate,
    user: User = Depends(seller_roles),
    service: SaleService = Depends(get_sale_service),
):
    return await service.create_sale(
        seller_id=user.id,
        items=[SaleLine(i.product_id, i.quantity, i.unit_price, i.discount) for i in payload.items],
        payment_method=payload.payment_method,
        customer_id=payload.customer_id,
        discount=payload.discount,
        paid_amount=payload.paid_amount,
        notes=payload.notes,
    )


@router.get("/sales", response_model=Page[SaleRead])
async def sale_history(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(seller_roles),
    service: SaleService = Depends(get_sale_service),
):
    return await service.list_sales(user.id, start_date, end_date, page, limit)


def _sale_owner(user: User) -> Optional[str]:
    # Managers and admins may act on any seller's ticket
    return None if Role(user.role) in (Role.ADMIN, Role.MANAGER) else user.id


@router.get("/sales/suspended", response_model=List[SaleRead])
async def suspended_sales(
    user: User = Depends(seller_roles),
    service: SaleService = Depends(get_sale_service),
):
    return await service.list_suspended(user.id)


@router.get("/sales/{sale_id}", response_model=SaleRead)
async def get_sale(
    sale_id: str,
    user: User = Depends(seller_roles),
    service: SaleService = Depends(get_sale_service),
):
    return await service.get_sale(sale_id, _sale_owner(user))


@router.post("/sales/{sale_id}/suspend", response_model=SaleRead)
async def suspend_sale(
    sale_id: str,
    user: User = Depends(seller_roles),
    service: SaleService = Depends(get_sale_service),
):
    return await service.suspend_sale(sale_id, _sale_owner(user))


@router.post("/sales/{sale_id}/resume", response_model=SaleRead)
async def resume_sale(
    sale_id: str,
    user: User = Depends(seller_roles),
    service: SaleService = Depends(get_sale_service),
):
    return await service.resume_sale(sale_id, _sale_owner(user))
