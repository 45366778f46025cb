# app/services/notification_service.py
"""
Notification fan-out.

NotificationFanout runs inside a caller's unit of work: it stages Notification
rows in the same transaction as the business change and queues the realtime
pushes in the unit of work's outbox, so nothing reaches a socket unless the
change commits.

NotificationService covers the user's own inbox (listing, read flags,
preferences), each call in its own short transaction.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Optional

from app.core.enums import NotificationType, Role, SocketEvent
from app.core.exceptions import NotFoundError
from app.core.utils import new_id, paginate_query
from app.models.notification import Notification, NotificationPreferences
from app.services.unit_of_work import UnitOfWork
from app.services.websockets.manager import user_room, role_room

logger = logging.getLogger(__name__)

PREFERENCE_FIELDS = (
    "order_updates",
    "promotions",
    "delivery_updates",
    "loyalty_updates",
    "push_enabled",
    "email_enabled",
    "sms_enabled",
)


class NotificationFanout:

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def notify_user(
        self,
        user_id: str,
        event: SocketEvent,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        notification_type: NotificationType = NotificationType.ORDER_UPDATE,
    ) -> Notification:
        """Persist one notification for the user and queue the push to `user:{id}`."""
        notification = Notification(
            id=new_id(),
            user_id=user_id,
            type=notification_type,
            title=title,
            body=body,
            data=dict(data or {}),
            is_read=False,
        )
        self.uow.session.add(notification)

        payload = dict(data or {})
        payload.update(notificationId=notification.id, title=title, body=body)
        self.uow.emit(user_room(user_id), SocketEvent(event).value, payload)
        return notification

    async def notify_roles(
        self,
        roles: Iterable[Role],
        event: SocketEvent,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        notification_type: NotificationType = NotificationType.ORDER_UPDATE,
    ) -> int:
        """
        Persist one row per active user holding any of the roles, then queue
        one push per role room. Returns the number of rows staged.
        """
        roles = [Role(r) for r in roles]
        user_ids = await self.uow.users.active_ids_with_roles(roles)
        for user_id in user_ids:
            self.uow.session.add(Notification(
                user_id=user_id,
                type=notification_type,
                title=title,
                body=body,
                data=dict(data or {}),
                is_read=False,
            ))

        payload = dict(data or {})
        payload.update(title=title, body=body)
        for role in roles:
            self.uow.emit(role_room(role), SocketEvent(event).value, payload)
        return len(user_ids)


class NotificationService:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def list_notifications(self, user_id: str, is_read: Optional[bool] = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        async with self.uow_factory() as uow:
            query = uow.notifications.for_user_query(user_id, is_read)
            return await paginate_query(query, uow.session, page, limit)

    async def unread_count(self, user_id: str) -> int:
        async with self.uow_factory() as uow:
            return await uow.notifications.unread_count(user_id)

    async def mark_as_read(self, notification_id: str, user_id: str) -> Notification:
        async with self.uow_factory() as uow:
            if not await uow.notifications.mark_read(notification_id, user_id):
                raise NotFoundError("Notification not found")
            notification = await uow.notifications.get(notification_id, refresh=True)
            await uow.commit()
            return notification

    async def mark_all_as_read(self, user_id: str) -> int:
        async with self.uow_factory() as uow:
            count = await uow.notifications.mark_all_read(user_id)
            await uow.commit()
        logger.info(f"Marked {count} notification(s) read for user {user_id}")
        return count

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        async with self.uow_factory() as uow:
            preferences = await self._get_or_create_preferences(uow, user_id)
            await uow.commit()
            return preferences

    async def update_preferences(self, user_id: str, changes: Dict[str, Any]) -> NotificationPreferences:
        async with self.uow_factory() as uow:
            preferences = await self._get_or_create_preferences(uow, user_id)
            for key, value in changes.items():
                if key in PREFERENCE_FIELDS and value is not None:
                    setattr(preferences, key, value)
            await uow.session.flush()
            await uow.commit()
            return preferences

    async def _get_or_create_preferences(self, uow: UnitOfWork, user_id: str) -> NotificationPreferences:
        preferences = await uow.notifications.get_preferences(user_id)
        if preferences is None:
            preferences = NotificationPreferences(user_id=user_id)
            uow.session.add(preferences)
            await uow.session.flush()
        return preferences
