"""
Schemas for the notification inbox.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from app.core.enums import NotificationType
from .base import BaseSchema


class NotificationRead(BaseSchema):
    id: str
    type: NotificationType
    title: str
    body: str
    data: Optional[Dict[str, Any]] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class UnreadCount(BaseSchema):
    count: int


class MarkAllReadResult(BaseSchema):
    updated: int


class NotificationPreferencesRead(BaseSchema):
    order_updates: bool
    promotions: bool
    delivery_updates: bool
    loyalty_updates: bool
    push_enabled: bool
    email_enabled: bool
    sms_enabled: bool


class NotificationPreferencesUpdate(BaseSchema):
    order_updates: Optional[bool] = None
    promotions: Optional[bool] = None
    delivery_updates: Optional[bool] = None
    loyalty_updates: Optional[bool] = None
    push_enabled: Optional[bool] = None
    email_enabled: Optional[bool] = None
    sms_enabled: Optional[bool] = None
