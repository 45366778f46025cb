# app/repositories/notification_repository.py
from typing import Optional

from sqlalchemy import select, update, func, Select

from app.core.utils import utcnow
from app.models.notification import Notification, NotificationPreferences
from app.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    model = Notification

    def for_user_query(self, user_id: str, is_read: Optional[bool] = None) -> Select:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if is_read is not None:
            stmt = stmt.where(Notification.is_read.is_(is_read))
        return stmt.order_by(Notification.created_at.desc())

    async def unread_count(self, user_id: str) -> int:
        stmt = select(func.count(Notification.id)).where(
            Notification.user_id == user_id, Notification.is_read.is_(False)
        )
        return await self.db.scalar(stmt) or 0

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(is_read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_all_read(self, user_id: str) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        result = await self.db.execute(
            select(NotificationPreferences).where(NotificationPreferences.user_id == user_id)
        )
        return result.scalar_one_or_none()
