"""Courier routes - assignment, progression, location pings and rating."""
from typing import List

from fastapi import APIRouter, Depends, status
import logging

from app.core.enums import Role
from app.core.exceptions import ForbiddenError
from app.core.security import get_current_user, require_roles
from app.dependencies import get_delivery_service
from app.models.user import User
from app.schemas.delivery import (
    DeliveryAssign,
    DeliveryRate,
    DeliveryRead,
    DeliveryStatusUpdate,
    DeliveryTracking,
    LocationUpdate,
)
from app.schemas.order import OrderBrief
from app.services.delivery_service import DeliveryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/delivery", tags=["delivery"])

courier = require_roles(Role.DELIVERY)


@router.post("/assign", response_model=DeliveryRead, status_code=status.HTTP_201_CREATED)
async def assign_delivery(
    payload: DeliveryAssign,
    user: User = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    service: DeliveryService = Depends(get_delivery_service),
):
    return await service.assign_delivery(payload.order_id, payload.delivery_person_id, user.id)


@router.get("/available", response_model=List[OrderBrief])
async def available_orders(
    user: User = Depends(courier),
    service: DeliveryService = Depends(get_delivery_service),
):
    return await service.list_available()


@router.post("/orders/{order_id}/accept", response_model=DeliveryRead, status_code=status.HTTP_201_CREATED)
async def accept_delivery(
    order_id: str,
    user: User = Depends(courier),
    service: DeliveryService = Depends(get_delivery_service),
):
    return await service.self_assign(order_id, user.id)


@router.get("/active", response_model=List[DeliveryRead])
async def active_deliveries(
    user: User = Depends(courier),
    service: DeliveryService = Depends(get_delivery_service),
):
    return await service.list_active(user.id)


@router.get("/history", response_model=List[DeliveryRead])
async def delivery_history(
    user: User = Depends(courier),
    service: DeliveryService = Depends(get_delivery_service),
):
    return await service.list_history(user.id)


@router.get("/order/{order_id}", response_model=DeliveryTracking)
async def delivery_by_order(
    order_id: str,
    user: User = Depends(get_current_user),
    service: DeliveryService = Depends(get_delivery_service),
):
    tracking = await service.get_by_order(order_id)
    delivery = tracking["delivery"]
    if Role(user.role) is Role.CUSTOMER and delivery.order.customer_id != user.id:
        raise ForbiddenError("You can only track your own orders")
    return tracking


@router.patch("/{delivery_id}/location", response_model=DeliveryRead)
async def update_location(
    delivery_id: str,
    payload: LocationUpdate,
    user: User = Depends(courier),
    service: DeliveryService = Depends(get_delivery_service),
):
    return await service.update_location(delivery_id, payload.latitude, payload.longitude, user.id)


@router.patch("/{delivery_id}/status", response_model=DeliveryRead)
async def update_status(
    delivery_id: str,
    payload: DeliveryStatusUpdate,
    user: User = Depends(courier),
    service: DeliveryService = Depends(get_delivery_service),
):
    return await service.update_status(delivery_id, payload.status, user.id, payload.failure_reason)


@router.post("/{delivery_id}/rate", response_model=DeliveryRead)
async def rate_delivery(
    delivery_id: str,
    payload: DeliveryRate,
    user: User = Depends(get_current_user),
    service: DeliveryService = Depends(get_delivery_service),
):
    return await service.rate_delivery(delivery_id, user.id, payload.rating, payload.comment)
