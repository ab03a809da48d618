"""Typed query builders over the product and order tables.

Both functions turn a criteria record into a filtered, sorted and limited
SELECT and return pydantic read models, so callers never hold live ORM rows.
The database stays the single source of truth: nothing here writes.
"""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from .database import SessionLocal
from .models import Order, Product
from ..app.config import Config
from ..schemas.io_models import OrderOut, PriceRange, ProductOut
from ..utils.errors import InvalidArgument

# largest value a signed 64-bit INTEGER column can hold
MAX_USER_ID = 2 ** 63 - 1
MAX_USER_ID_DIGITS = len(str(MAX_USER_ID))


class ProductCriteria(BaseModel):
    category: Optional[str] = None
    brand: Optional[str] = None
    department: Optional[str] = None
    name: Optional[str] = None
    price_range: Optional[PriceRange] = None
    limit: int = Field(default=Config.MAX_PRODUCT_RESULTS, ge=1)


class DateRange(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class OrderCriteria(BaseModel):
    status: Optional[str] = None
    date_range: Optional[DateRange] = None
    limit: int = Field(default=Config.MAX_ORDER_RESULTS, ge=1)


def parse_user_id(user_id: Union[str, int, None]) -> int:
    """Orders are keyed by a numeric user id; anything else is rejected."""
    if isinstance(user_id, bool):
        raise InvalidArgument(f"Invalid user_id: {user_id!r}")
    if isinstance(user_id, str):
        text = user_id.strip()
        # ASCII digits only; str.isdigit() alone also admits superscripts
        if not (text.isascii() and text.isdigit()) or len(text) > MAX_USER_ID_DIGITS:
            raise InvalidArgument(f"Invalid user_id: {user_id!r}")
        user_id = int(text)
    if not isinstance(user_id, int) or not 0 <= user_id <= MAX_USER_ID:
        raise InvalidArgument(f"Invalid user_id: {user_id!r}")
    return user_id


def find_products(criteria: Optional[ProductCriteria] = None, session_factory=SessionLocal) -> List[ProductOut]:
    """
    Search the product catalogue.

    Args:
        criteria: Substring filters (case-insensitive), price range and limit
        session_factory: Session factory bound to the catalogue database

    Returns:
        Products sorted by retail price, cheapest first
    """
    criteria = criteria or ProductCriteria()
    db = session_factory()
    try:
        db_query = db.query(Product)

        for column, value in (
            (Product.category, criteria.category),
            (Product.brand, criteria.brand),
            (Product.department, criteria.department),
            (Product.name, criteria.name),
        ):
            if value:
                db_query = db_query.filter(column.icontains(value, autoescape=True))

        if criteria.price_range is not None:
            low = criteria.price_range.min if criteria.price_range.min is not None else 0
            db_query = db_query.filter(Product.retail_price >= low)
            if criteria.price_range.max is not None:
                db_query = db_query.filter(Product.retail_price <= criteria.price_range.max)

        rows = (
            db_query.order_by(Product.retail_price.asc(), Product.id.asc())
            .limit(criteria.limit)
            .all()
        )
        return [ProductOut.model_validate(r) for r in rows]
    finally:
        db.close()


def find_orders(user_id: Union[str, int], criteria: Optional[OrderCriteria] = None, session_factory=SessionLocal) -> List[OrderOut]:
    """
    List a user's orders, newest first.

    Raises:
        InvalidArgument: user_id is not a non-negative integer (no query is issued)
    """
    numeric_id = parse_user_id(user_id)
    criteria = criteria or OrderCriteria()
    db = session_factory()
    try:
        db_query = db.query(Order).filter(Order.user_id == numeric_id)

        if criteria.status:
            db_query = db_query.filter(Order.status.icontains(criteria.status, autoescape=True))

        if criteria.date_range is not None:
            if criteria.date_range.start is not None:
                db_query = db_query.filter(Order.created_at >= criteria.date_range.start)
            if criteria.date_range.end is not None:
                db_query = db_query.filter(Order.created_at <= criteria.date_range.end)

        rows = (
            db_query.order_by(Order.created_at.desc(), Order.order_id.desc())
            .limit(criteria.limit)
            .all()
        )
        return [OrderOut.model_validate(r) for r in rows]
    finally:
        db.close()
