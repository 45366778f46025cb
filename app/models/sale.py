# app/models/sale.py

from sqlalchemy import Column, Integer, String, Numeric, Boolean, ForeignKey, DateTime, Enum, Text, func
from sqlalchemy.orm import relationship

from ..database import Base
from app.core.enums import PaymentMethod
from app.core.utils import new_id, utcnow


class Sale(Base):
    """Represents an in-store point-of-sale ticket."""

    __tablename__ = "sales"

    id = Column(String(36), primary_key=True, default=new_id)
    order_number = Column(String, unique=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    seller_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    customer_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=True)

    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)

    payment_method = Column(Enum(PaymentMethod, name="paymentmethod"), nullable=False)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    change = Column(Numeric(12, 2), nullable=False, default=0)

    is_suspended = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    items = relationship("SaleItem", back_populates="sale", cascade="all, delete-orphan", lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<Sale id={self.id} number={self.order_number} seller={self.seller_id} "
            f"total={self.total} suspended={self.is_suspended}>"
        )


class SaleItem(Base):
    __tablename__ = "sale_items"

    id = Column(String(36), primary_key=True, default=new_id)
    sale_id = Column(String(36), ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)

    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)

    sale = relationship("Sale", back_populates="items")
