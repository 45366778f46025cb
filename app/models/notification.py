# app/models/notification.py

from sqlalchemy import Column, String, Boolean, ForeignKey, DateTime, Enum, Text, JSON, func
from sqlalchemy.dialects.postgresql import JSONB

from ..database import Base
from app.core.enums import NotificationType
from app.core.utils import new_id, utcnow


class Notification(Base):
    """Persisted in-app notification. Mutated only to mark it read."""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(NotificationType, name="notificationtype"), nullable=False)
    title = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    data = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True, default=dict)
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Notification id={self.id} user={self.user_id} type={self.type} read={self.is_read}>"


class NotificationPreferences(Base):
    __tablename__ = "notification_preferences"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    order_updates = Column(Boolean, nullable=False, default=True)
    promotions = Column(Boolean, nullable=False, default=True)
    delivery_updates = Column(Boolean, nullable=False, default=True)
    loyalty_updates = Column(Boolean, nullable=False, default=True)
    push_enabled = Column(Boolean, nullable=False, default=True)
    email_enabled = Column(Boolean, nullable=False, default=False)
    sms_enabled = Column(Boolean, nullable=False, default=False)

    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )
