"""Order routes - placement, tracking, staff status changes and cancellation."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
import logging

from app.core.enums import Role, OrderStatus, FulfillmentType, BACK_OFFICE_ROLES
from app.core.exceptions import ForbiddenError
from app.core.security import get_current_user, require_roles
from app.dependencies import get_order_service
from app.models.user import User
from app.schemas.base import Page
from app.schemas.order import (
    OrderCancel,
    OrderCreate,
    OrderDetail,
    OrderRead,
    OrderStatusUpdate,
    OrderTracking,
)
from app.services.order_service import OrderLine, OrderService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["orders"])


def ensure_can_read(order_customer_id: str, user: User) -> None:
    """Back office reads any order; everyone else only the orders they placed."""
    if order_customer_id != user.id and Role(user.role) not in BACK_OFFICE_ROLES:
        raise ForbiddenError("You can only view your own orders")


@router.post("", response_model=OrderDetail, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    user: User = Depends(require_roles(Role.CUSTOMER)),
    service: OrderService = Depends(get_order_service),
):
    return await service.create(
        customer_id=user.id,
        items=[OrderLine(item.product_id, item.quantity, item.notes) for item in payload.items],
        fulfillment_type=payload.fulfillment_type,
        delivery_address_id=payload.delivery_address_id,
        coupon_code=payload.coupon_code,
        notes=payload.notes,
    )


@router.get("", response_model=Page[OrderRead])
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    fulfillment_type: Optional[FulfillmentType] = Query(None),
    search: Optional[str] = Query(None, description="Search by order number or notes"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    sort_by: str = Query("created_at", description="Column to sort by"),
    sort_order: str = Query("desc", description="Sort order: asc or desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(require_roles(*BACK_OFFICE_ROLES)),
    service: OrderService = Depends(get_order_service),
):
    return await service.list_orders(
        status=status_filter,
        fulfillment_type=fulfillment_type,
        search=search,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


@router.get("/my-orders", response_model=Page[OrderRead])
async def my_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.list_customer_orders(user.id, status=status_filter, page=page, limit=limit)


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order(
    order_id: str,
    user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = await service.get_order(order_id)
    ensure_can_read(order.customer_id, user)
    return order


@router.get("/{order_id}/tracking", response_model=OrderTracking)
async def track_order(
    order_id: str,
    user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    tracking = await service.get_tracking(order_id)
    ensure_can_read(tracking["customer_id"], user)
    return tracking


@router.patch("/{order_id}/status", response_model=OrderDetail)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    user: User = Depends(require_roles(*BACK_OFFICE_ROLES)),
    service: OrderService = Depends(get_order_service),
):
    return await service.update_status(order_id, payload.status, user.id, payload.notes)


@router.post("/{order_id}/cancel", response_model=OrderDetail)
async def cancel_order(
    order_id: str,
    payload: Optional[OrderCancel] = None,
    user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.cancel(order_id, user.id, payload.reason if payload else None)
