# app/models/delivery.py

from sqlalchemy import (
    Column, Integer, String, Float, ForeignKey, DateTime, Enum, Text, func
)
from sqlalchemy.orm import relationship

from ..database import Base
from app.core.enums import DeliveryStatus
from app.core.utils import new_id, utcnow


class Delivery(Base):
    """Courier work unit. At most one per order (unique `order_id`)."""

    __tablename__ = "deliveries"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False)
    delivery_person_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    status = Column(Enum(DeliveryStatus, name="deliverystatus"), nullable=False, default=DeliveryStatus.ASSIGNED, index=True)

    current_latitude = Column(Float, nullable=True)
    current_longitude = Column(Float, nullable=True)

    picked_up_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    estimated_minutes = Column(Integer, nullable=True)
    actual_minutes = Column(Integer, nullable=True)
    failure_reason = Column(Text, nullable=True)

    rating = Column(Integer, nullable=True)
    rating_comment = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    order = relationship("Order", back_populates="delivery")
    location_history = relationship(
        "DeliveryLocationHistory",
        back_populates="delivery",
        cascade="all, delete-orphan",
        order_by="DeliveryLocationHistory.created_at.desc()",
    )

    def __repr__(self) -> str:
        return f"<Delivery id={self.id} order={self.order_id} courier={self.delivery_person_id} status={self.status}>"


class DeliveryLocationHistory(Base):
    """Append-only courier position pings."""

    __tablename__ = "delivery_location_history"

    id = Column(String(36), primary_key=True, default=new_id)
    delivery_id = Column(String(36), ForeignKey("deliveries.id", ondelete="CASCADE"), nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)

    delivery = relationship("Delivery", back_populates="location_history")
