# app/models/order.py

from sqlalchemy import (
    Column, Integer, String, Numeric, ForeignKey, DateTime, Enum, Text, func
)
from sqlalchemy.orm import relationship

from ..database import Base
from app.core.enums import OrderStatus, FulfillmentType
from app.core.utils import new_id, utcnow


class Order(Base):
    """
    Customer order aggregate.

    Owns its lines, the append-only status history and, once created, the
    picking order and the delivery. Status changes go through OrderService or
    one of the coordinators; nothing else writes `status`.
    """

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    order_number = Column(String, unique=True, nullable=False, index=True)

    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    seller_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    delivery_person_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    delivery_address_id = Column(String(36), ForeignKey("addresses.id"), nullable=True)
    coupon_id = Column(String(36), ForeignKey("coupons.id"), nullable=True)

    status = Column(Enum(OrderStatus, name="orderstatus"), nullable=False, default=OrderStatus.PENDING, index=True)
    fulfillment_type = Column(Enum(FulfillmentType, name="fulfillmenttype"), nullable=False)

    # Money
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    delivery_fee = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    cancel_reason = Column(Text, nullable=True)

    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy="selectin",
    )
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.created_at",
        lazy="selectin",
    )
    picking_order = relationship(
        "PickingOrder",
        back_populates="order",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    delivery = relationship(
        "Delivery",
        back_populates="order",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number} status={self.status}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    product_name = Column(String, nullable=False)  # snapshot at order time
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    notes = Column(Text, nullable=True)

    order = relationship("Order", back_populates="items")

    def __repr__(self) -> str:
        return f"<OrderItem order={self.order_id} product={self.product_id} qty={self.quantity}>"


class OrderStatusHistory(Base):
    """Append-only audit of order status changes."""

    __tablename__ = "order_status_history"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(OrderStatus, name="orderstatus"), nullable=False)
    changed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="status_history")
