"""
Utility functions for the application.
"""
import random
import string
import time
import uuid

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, Union

import sqlalchemy
from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

CENTS = Decimal("0.01")
_BASE36 = string.digits + string.ascii_uppercase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite hands them back without tzinfo)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def to_money(value: Union[Decimal, float, int, str, None]) -> Decimal:
    """Round a monetary value half-up to cents. Floats go through str() to avoid binary noise."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_order_number(prefix: str = "PED") -> str:
    """
    Human-facing order reference: PREFIX-<epoch millis in base36>-<4 random chars>.

    Example: PED-LZ3K9Q1A-7F2C
    """
    timestamp = _base36(int(time.time() * 1000))
    suffix = "".join(random.choices(_BASE36, k=4))
    return f"{prefix}-{timestamp}-{suffix}"


async def paginate_query(
    query: Select,
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20
) -> Dict[str, Any]:
    """
    Paginate a SQLAlchemy select.

    Args:
        query: SQLAlchemy select statement returning ORM entities
        db: Database session
        page: Page number (1-indexed)
        page_size: Number of items per page

    Returns:
        Dictionary with pagination information and items
    """
    page = max(page, 1)

    # Get total count for pagination
    count_query = sqlalchemy.select(sqlalchemy.func.count()).select_from(query.order_by(None).subquery())
    total = await db.scalar(count_query) or 0

    # Apply pagination
    offset = (page - 1) * page_size
    result = await db.execute(query.offset(offset).limit(page_size))
    items = result.scalars().unique().all()

    # Calculate pagination values
    total_pages = (total + page_size - 1) // page_size if total > 0 else 1

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
