# app/services/sale_service.py
"""
Point-of-sale counter sales. A sale is paid on the spot, so it goes straight
to OUT movements in the stock ledger without an order or picking step.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy import select

from app.core.enums import MovementType, PaymentMethod, ReferenceType
from app.core.exceptions import BadRequestError, ConflictError, ForbiddenError, InsufficientStockError, NotFoundError
from app.core.utils import generate_order_number, new_id, paginate_query, to_money, utcnow
from app.models.sale import Sale, SaleItem
from app.services.stock_ledger import StockLedger
from app.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass
class SaleLine:
    product_id: str
    quantity: int
    unit_price: Optional[Decimal] = None
    discount: Optional[Decimal] = None


class SaleService:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def create_sale(
        self,
        seller_id: str,
        items: Sequence[SaleLine],
        payment_method: PaymentMethod,
        customer_id: Optional[str] = None,
        discount: Optional[Decimal] = None,
        paid_amount: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> Sale:
        if not items:
            raise BadRequestError("Sale must contain at least one item")
        for line in items:
            if line.quantity is None or line.quantity < 1:
                raise BadRequestError("Item quantity must be at least 1")

        async with self.uow_factory() as uow:
            products = {p.id: p for p in await uow.stock.lock_products(line.product_id for line in items)}
            missing = sorted({line.product_id for line in items} - set(products))
            if missing:
                raise NotFoundError(f"Products not found: {', '.join(missing)}")

            requested: Dict[str, int] = {}
            for line in items:
                requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity
            for product_id, quantity in requested.items():
                product = products[product_id]
                if product.stock < quantity:
                    raise InsufficientStockError(
                        f'Insufficient stock for "{product.name}". Available: {product.stock} {product.unit}',
                        product_id=product.id,
                        available=product.stock,
                    )

            subtotal = Decimal("0")
            tax = Decimal("0")
            sale_items: List[SaleItem] = []
            for line in items:
                product = products[line.product_id]
                unit_price = to_money(line.unit_price if line.unit_price is not None else product.price)
                item_discount = to_money(line.discount or 0)
                gross = unit_price * line.quantity
                item_total = to_money(gross - item_discount)
                subtotal += item_total
                tax += gross * Decimal(product.tax_rate or 0)
                sale_items.append(SaleItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    discount=item_discount,
                    total=item_total,
                ))

            subtotal = to_money(subtotal)
            tax = to_money(tax)
            general_discount = to_money(discount or 0)
            if general_discount > subtotal:
                raise BadRequestError("Discount cannot exceed the sale subtotal")
            total = to_money(subtotal - general_discount + tax)

            paid = to_money(paid_amount) if paid_amount is not None else total
            if paid < total:
                raise BadRequestError(f"Paid amount ({paid}) is lower than the total ({total})")

            sale_id = new_id()
            order_number = generate_order_number("POS")
            sale = Sale(
                id=sale_id,
                order_number=order_number,
                seller_id=seller_id,
                customer_id=customer_id,
                subtotal=subtotal,
                discount=general_discount,
                tax=tax,
                total=total,
                payment_method=PaymentMethod(payment_method),
                paid_amount=paid,
                change=to_money(paid - total),
                notes=notes,
                is_suspended=False,
                completed_at=utcnow(),
                items=sale_items,
            )
            uow.sales.add(sale)

            ledger = StockLedger(uow)
            for line in items:
                product = products[line.product_id]
                await ledger.record_movement(
                    product.id,
                    MovementType.OUT,
                    line.quantity,
                    actor_id=seller_id,
                    reason=f"POS sale {order_number}",
                    reference_id=sale_id,
                    reference_type=ReferenceType.SALE,
                    product=product,
                )
                product.sales_count = (product.sales_count or 0) + line.quantity

            await uow.session.flush()
            await uow.commit()

        logger.info(f"POS sale {order_number} by seller {seller_id}: total {total}")
        return sale

    async def list_sales(self, seller_id: str, start_date: Optional[datetime] = None,
                         end_date: Optional[datetime] = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        async with self.uow_factory() as uow:
            query = select(Sale).where(Sale.seller_id == seller_id)
            if start_date:
                query = query.where(Sale.created_at >= start_date)
            if end_date:
                query = query.where(Sale.created_at <= end_date)
            query = query.order_by(Sale.created_at.desc())
            return await paginate_query(query, uow.session, page, limit)

    async def suspend_sale(self, sale_id: str, seller_id: Optional[str] = None) -> Sale:
        return await self._set_suspended(sale_id, seller_id, True)

    async def resume_sale(self, sale_id: str, seller_id: Optional[str] = None) -> Sale:
        return await self._set_suspended(sale_id, seller_id, False)

    async def _set_suspended(self, sale_id: str, seller_id: Optional[str], suspended: bool) -> Sale:
        async with self.uow_factory() as uow:
            sale = await uow.sales.get(sale_id, for_update=True)
            if sale is None:
                raise NotFoundError("Sale not found")
            if seller_id is not None and sale.seller_id != seller_id:
                raise ForbiddenError("This sale belongs to another seller")
            if sale.is_suspended == suspended:
                raise ConflictError("Sale is already suspended" if suspended else "Sale is not suspended")

            sale.is_suspended = suspended
            await uow.session.flush()
            await uow.commit()

        logger.info(f"Sale {sale.order_number} {'suspended' if suspended else 'resumed'} by seller {seller_id}")
        return sale

    async def get_sale(self, sale_id: str, seller_id: Optional[str] = None) -> Sale:
        async with self.uow_factory() as uow:
            sale = await uow.sales.get(sale_id)
            if sale is None:
                raise NotFoundError("Sale not found")
            if seller_id is not None and sale.seller_id != seller_id:
                raise ForbiddenError("This sale belongs to another seller")
            return sale

    async def list_suspended(self, seller_id: str) -> List[Sale]:
        async with self.uow_factory() as uow:
            return await uow.sales.list_suspended(seller_id)

    async def seller_stats(self, seller_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Counter figures for the current UTC day. Suspended tickets are not
        counted; open picking work is whatever the seller has claimed and not
        completed.
        """
        now = now or utcnow()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end = day_start + timedelta(days=1)

        async with self.uow_factory() as uow:
            tickets, sales_total, units = await uow.sales.totals_between(seller_id, day_start, day_end)
            open_picking = await uow.picking.count_open_for_seller(seller_id)

        today_sales = to_money(sales_total)
        return {
            "today_sales": today_sales,
            "today_orders": tickets,
            "average_ticket": to_money(today_sales / tickets) if tickets else to_money(0),
            "items_sold": units,
            "pending_picking_orders": open_picking,
        }
