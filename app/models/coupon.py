# app/models/coupon.py

from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, Enum, func

from ..database import Base
from app.core.enums import CouponType
from app.core.utils import new_id, utcnow


class Coupon(Base):
    """Discount codes. Only `current_uses` is written by the order ledger."""

    __tablename__ = "coupons"

    id = Column(String(36), primary_key=True, default=new_id)
    code = Column(String, unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)
    type = Column(Enum(CouponType, name="coupontype"), nullable=False)
    value = Column(Numeric(12, 2), nullable=False)
    min_order_value = Column(Numeric(12, 2), nullable=True)
    max_discount_value = Column(Numeric(12, 2), nullable=True)
    max_uses = Column(Integer, nullable=True)
    current_uses = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Coupon code={self.code} type={self.type} value={self.value}>"
