"""Notification inbox and delivery preferences for the signed-in user."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
import logging

from app.core.security import get_current_user
from app.dependencies import get_notification_service
from app.models.user import User
from app.schemas.base import Page
from app.schemas.notification import (
    MarkAllReadResult,
    NotificationPreferencesRead,
    NotificationPreferencesUpdate,
    NotificationRead,
    UnreadCount,
)
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=Page[NotificationRead])
async def list_notifications(
    is_read: Optional[bool] = Query(None, alias="isRead"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.list_notifications(user.id, is_read, page, limit)


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return {"count": await service.unread_count(user.id)}


@router.get("/preferences", response_model=NotificationPreferencesRead)
async def get_preferences(
    user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.get_preferences(user.id)


@router.patch("/preferences", response_model=NotificationPreferencesRead)
async def update_preferences(
    payload: NotificationPreferencesUpdate,
    user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.update_preferences(user.id, payload.model_dump(exclude_unset=True))


# Must stay above /{notification_id}/read
@router.patch("/read-all", response_model=MarkAllReadResult)
async def mark_all_read(
    user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return {"updated": await service.mark_all_as_read(user.id)}


@router.patch("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: str,
    user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.mark_as_read(notification_id, user.id)
