# app/models/picking.py

from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, DateTime, Enum, Text, func
)
from sqlalchemy.orm import relationship

from ..database import Base
from app.core.enums import PickingStatus
from app.core.utils import new_id, utcnow


class PickingOrder(Base):
    """
    Seller work unit for collecting an order's items off the shelves.

    `seller_id` is set exactly while the status is PICKING, PICKED or READY.
    `picked_items` always equals the number of lines with `is_picked` set and
    is only ever incremented in the database.
    """

    __tablename__ = "picking_orders"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False)
    seller_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)

    status = Column(Enum(PickingStatus, name="pickingstatus"), nullable=False, default=PickingStatus.PENDING, index=True)
    total_items = Column(Integer, nullable=False, default=0)
    picked_items = Column(Integer, nullable=False, default=0)

    assigned_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    order = relationship("Order", back_populates="picking_order")
    items = relationship(
        "PickingItem",
        back_populates="picking_order",
        cascade="all, delete-orphan",
        order_by="PickingItem.position",
        lazy="selectin",
    )

    @property
    def all_picked(self) -> bool:
        return self.total_items > 0 and self.picked_items >= self.total_items

    def __repr__(self) -> str:
        return (
            f"<PickingOrder id={self.id} order={self.order_id} status={self.status} "
            f"{self.picked_items}/{self.total_items}>"
        )


class PickingItem(Base):
    __tablename__ = "picking_items"

    id = Column(String(36), primary_key=True, default=new_id)
    picking_order_id = Column(String(36), ForeignKey("picking_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    order_item_id = Column(String(36), ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    quantity = Column(Integer, nullable=False)
    is_picked = Column(Boolean, nullable=False, default=False)
    picked_quantity = Column(Integer, nullable=False, default=0)
    picked_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    picking_order = relationship("PickingOrder", back_populates="items")
    order_item = relationship("OrderItem")
    product = relationship("Product", lazy="selectin")
