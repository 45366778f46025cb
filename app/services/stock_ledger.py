# app/services/stock_ledger.py
"""
Stock ledger: the only writer of `Product.stock`.

Every change to a product's stock is one InventoryMovement row carrying the
stock before and after. The ledger never commits; it runs inside whatever
unit of work the caller opened, so an order, sale or receipt either lands
together with its movements or not at all.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from app.core.enums import MovementType, ReferenceType, PurchaseOrderStatus
from app.core.exceptions import BadRequestError, InsufficientStockError, NotFoundError
from app.core.utils import paginate_query, utcnow
from app.models.inventory import InventoryMovement
from app.models.product import Product
from app.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class StockLedger:

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def _locked_product(self, product_id: str) -> Product:
        product = await self.uow.stock.get(product_id, for_update=True)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def _write(
        self,
        product: Product,
        movement_type: MovementType,
        quantity: int,
        new_stock: int,
        actor_id: Optional[str],
        reason: Optional[str],
        reference_id: Optional[str],
        reference_type: Optional[ReferenceType],
    ) -> InventoryMovement:
        movement = InventoryMovement(
            product_id=product.id,
            type=movement_type,
            quantity=quantity,
            previous_stock=product.stock,
            new_stock=new_stock,
            reason=reason,
            performed_by_id=actor_id,
            reference_id=reference_id,
            reference_type=reference_type,
        )
        product.stock = new_stock
        self.uow.session.add(movement)
        return movement

    async def record_movement(
        self,
        product_id: str,
        movement_type: MovementType,
        quantity: int,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
        reference_id: Optional[str] = None,
        reference_type: Optional[ReferenceType] = None,
        product: Optional[Product] = None,
    ) -> InventoryMovement:
        """
        Apply one movement to a product.

        IN and RETURN add, OUT, DAMAGE and TRANSFER subtract, ADJUSTMENT sets the
        absolute quantity. Pass `product` when the caller already holds the
        row lock.
        """
        movement_type = MovementType(movement_type)
        minimum = 0 if movement_type is MovementType.ADJUSTMENT else 1
        if quantity is None or quantity < minimum:
            raise BadRequestError(f"Quantity must be at least {minimum}")

        if product is None:
            product = await self._locked_product(product_id)

        previous = product.stock
        if movement_type.sign == 0:
            new_stock = quantity
        else:
            new_stock = previous + movement_type.sign * quantity

        if new_stock < 0:
            raise InsufficientStockError(
                f'Insufficient stock for "{product.name}". '
                f"Available: {previous} {product.unit}, requested: {quantity}",
                product_id=product.id,
                available=previous,
            )

        movement = self._write(product, movement_type, quantity, new_stock, actor_id, reason, reference_id, reference_type)
        logger.info(f"Stock {movement_type.value} {quantity} for product {product.id}: {previous} -> {new_stock}")
        return movement

    async def adjust_stock(self, product_id: str, delta: int, reason: str, actor_id: Optional[str] = None) -> InventoryMovement:
        """Signed correction recorded as an ADJUSTMENT of |delta| units."""
        if not delta:
            raise BadRequestError("Adjustment quantity must not be zero")
        product = await self._locked_product(product_id)
        new_stock = product.stock + delta
        if new_stock < 0:
            raise InsufficientStockError(
                f"Adjustment would result in negative stock. Current stock: {product.stock}",
                product_id=product.id,
                available=product.stock,
            )

        previous = product.stock
        movement = self._write(product, MovementType.ADJUSTMENT, abs(delta), new_stock, actor_id, reason, None, None)
        logger.info(f"Stock adjusted by {delta} for product {product.id}: {previous} -> {new_stock}")
        return movement

    async def receive_purchase_order(
        self,
        purchase_order_id: str,
        received: Iterable[Tuple[str, int]],
        actor_id: Optional[str] = None,
    ):
        purchase_order = await self.uow.stock.get_purchase_order(purchase_order_id)
        if purchase_order is None:
            raise NotFoundError("Purchase order not found")
        if purchase_order.status == PurchaseOrderStatus.RECEIVED:
            raise BadRequestError("Purchase order has already been received")
        if purchase_order.status == PurchaseOrderStatus.CANCELLED:
            raise BadRequestError("Purchase order is cancelled")

        items_by_id = {item.id: item for item in purchase_order.items}
        received = [(item_id, qty) for item_id, qty in received if item_id in items_by_id and qty > 0]

        # Lock every product up front, in id order
        products = {p.id: p for p in await self.uow.stock.lock_products(items_by_id[i].product_id for i, _ in received)}

        for item_id, quantity in received:
            item = items_by_id[item_id]
            await self.record_movement(
                item.product_id,
                MovementType.IN,
                quantity,
                actor_id=actor_id,
                reason=f"Purchase order {purchase_order.order_number}",
                reference_id=purchase_order.id,
                reference_type=ReferenceType.PURCHASE_ORDER,
                product=products[item.product_id],
            )
            item.received_quantity = (item.received_quantity or 0) + quantity

        purchase_order.status = PurchaseOrderStatus.RECEIVED
        purchase_order.received_at = utcnow()
        await self.uow.session.flush()
        return purchase_order


class InventoryService:
    """Inventory operations exposed over HTTP, each in its own unit of work."""

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def record_movement(self, product_id: str, movement_type: MovementType, quantity: int,
                              actor_id: str, reason: Optional[str] = None) -> InventoryMovement:
        async with self.uow_factory() as uow:
            movement = await StockLedger(uow).record_movement(product_id, movement_type, quantity, actor_id, reason)
            await uow.session.flush()
            await uow.commit()
            return movement

    async def adjust_stock(self, product_id: str, delta: int, reason: str, actor_id: str) -> InventoryMovement:
        async with self.uow_factory() as uow:
            movement = await StockLedger(uow).adjust_stock(product_id, delta, reason, actor_id)
            await uow.session.flush()
            await uow.commit()
            return movement

    async def receive_purchase_order(self, purchase_order_id: str, received: Iterable[Tuple[str, int]], actor_id: str):
        async with self.uow_factory() as uow:
            purchase_order = await StockLedger(uow).receive_purchase_order(purchase_order_id, list(received), actor_id)
            await uow.commit()
            logger.info(f"Purchase order {purchase_order.order_number} received by {actor_id}")
            return purchase_order

    async def get_stock(self, product_id: str) -> Dict[str, Any]:
        async with self.uow_factory() as uow:
            product = await uow.stock.get(product_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found")
            return {
                "product_id": product.id,
                "sku": product.sku,
                "name": product.name,
                "unit": product.unit,
                "stock": product.stock,
                "min_stock": product.min_stock,
                "is_low_stock": product.is_low_stock,
            }

    async def list_stock(self, search: Optional[str] = None, low_stock: bool = False,
                         page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """Paged stock listing, emptiest products first."""
        async with self.uow_factory() as uow:
            return await paginate_query(uow.stock.stock_query(search, low_stock), uow.session, page, limit)

    async def get_by_barcode(self, barcode: str) -> Product:
        async with self.uow_factory() as uow:
            product = await uow.stock.get_by_barcode(barcode.strip())
            if product is None:
                raise NotFoundError(f"No product found with barcode {barcode}")
            return product

    async def low_stock(self) -> List[Dict[str, Any]]:
        """Products under their minimum, most critical (lowest stock/min ratio) first."""
        async with self.uow_factory() as uow:
            products = await uow.stock.low_stock()
            return [
                {
                    "product_id": p.id,
                    "sku": p.sku,
                    "name": p.name,
                    "unit": p.unit,
                    "stock": p.stock,
                    "min_stock": p.min_stock,
                    "deficit": p.min_stock - p.stock,
                }
                for p in products
            ]

    async def list_movements(
        self,
        product_id: Optional[str] = None,
        movement_type: Optional[MovementType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        async with self.uow_factory() as uow:
            query = uow.stock.movements_query(product_id, movement_type, start_date, end_date)
            return await paginate_query(query, uow.session, page, limit)
