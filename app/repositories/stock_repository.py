# app/repositories/stock_repository.py
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, Select, cast, Float, case, or_

from app.core.enums import MovementType
from app.models.inventory import InventoryMovement
from app.models.product import Product
from app.models.purchase_order import PurchaseOrder
from app.repositories.base import BaseRepository


class StockRepository(BaseRepository[Product]):
    model = Product

    async def lock_products(self, product_ids: Iterable[str]) -> List[Product]:
        """Lock product rows in id order so concurrent writers never deadlock."""
        ids = sorted(set(product_ids))
        if not ids:
            return []
        stmt = (
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_barcode(self, barcode: str) -> Optional[Product]:
        result = await self.db.execute(select(Product).where(Product.barcode == barcode))
        return result.scalar_one_or_none()

    def stock_query(self, search: Optional[str] = None, low_stock: bool = False) -> Select:
        stmt = select(Product)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern), Product.barcode.ilike(pattern)))
        if low_stock:
            stmt = stmt.where(Product.stock < Product.min_stock)
        return stmt.order_by(Product.stock.asc(), Product.name)

    async def low_stock(self) -> List[Product]:
        # stock / min_stock ascending; min_stock > 0 is implied by stock < min_stock with stock >= 0
        ratio = cast(Product.stock, Float) / case((Product.min_stock == 0, 1), else_=Product.min_stock)
        stmt = (
            select(Product)
            .where(Product.stock < Product.min_stock, Product.is_active.is_(True))
            .order_by(ratio.asc(), Product.name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    def movements_query(
        self,
        product_id: Optional[str] = None,
        movement_type: Optional[MovementType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Select:
        stmt = select(InventoryMovement)
        if product_id:
            stmt = stmt.where(InventoryMovement.product_id == product_id)
        if movement_type:
            stmt = stmt.where(InventoryMovement.type == movement_type)
        if start_date:
            stmt = stmt.where(InventoryMovement.created_at >= start_date)
        if end_date:
            stmt = stmt.where(InventoryMovement.created_at <= end_date)
        return stmt.order_by(InventoryMovement.created_at.desc())

    async def get_purchase_order(self, purchase_order_id: str) -> Optional[PurchaseOrder]:
        stmt = (
            select(PurchaseOrder)
            .where(PurchaseOrder.id == purchase_order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
