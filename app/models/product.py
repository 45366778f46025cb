# app/models/product.py
"""
Catalog products. The catalog service owns most columns; the stock ledger
writes `stock` and the order ledger writes `sales_count`.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, DateTime, CheckConstraint, func
)
from sqlalchemy.orm import relationship

from ..database import Base
from app.core.utils import new_id, utcnow


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Core product information
    sku = Column(String, unique=True, nullable=False)
    barcode = Column(String, unique=True, nullable=True, index=True)
    name = Column(String, nullable=False)
    unit = Column(String, nullable=False, default="un")
    price = Column(Numeric(12, 2), nullable=False)
    tax_rate = Column(Numeric(5, 4), nullable=False, default=0)

    # Stock fields, written only through the stock ledger
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)
    sales_count = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)

    movements = relationship("InventoryMovement", back_populates="product", order_by="InventoryMovement.created_at")

    @property
    def is_low_stock(self) -> bool:
        return (self.stock or 0) < (self.min_stock or 0)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku} stock={self.stock}>"
