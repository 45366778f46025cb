# app/models/inventory.py

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship

from ..database import Base
from app.core.enums import MovementType, ReferenceType
from app.core.utils import new_id, utcnow


class InventoryMovement(Base):
    """One immutable entry of the stock ledger. Never updated after insert."""

    __tablename__ = "inventory_movements"

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)

    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    type = Column(Enum(MovementType, name="movementtype"), nullable=False)
    quantity = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    reason = Column(String, nullable=True)

    performed_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    reference_id = Column(String(36), nullable=True, index=True)
    reference_type = Column(Enum(ReferenceType, name="referencetype"), nullable=True)

    product = relationship("Product", back_populates="movements")

    def __repr__(self) -> str:
        return (
            f"<InventoryMovement id={self.id} product={self.product_id} type={self.type} "
            f"qty={self.quantity} {self.previous_stock}->{self.new_stock}>"
        )
