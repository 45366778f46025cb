# app/models/purchase_order.py

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship

from ..database import Base
from app.core.enums import PurchaseOrderStatus
from app.core.utils import new_id, utcnow


class PurchaseOrder(Base):
    """Supplier purchase order. The stock ledger only records its receipt."""

    __tablename__ = "purchase_orders"

    id = Column(String(36), primary_key=True, default=new_id)
    order_number = Column(String, unique=True, nullable=False)
    supplier_name = Column(String, nullable=True)
    status = Column(Enum(PurchaseOrderStatus, name="purchaseorderstatus"), nullable=False, default=PurchaseOrderStatus.DRAFT)
    received_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    items = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    purchase_order_id = Column(String(36), ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Numeric(12, 2), nullable=True)
    received_quantity = Column(Integer, nullable=False, default=0)

    purchase_order = relationship("PurchaseOrder", back_populates="items")
