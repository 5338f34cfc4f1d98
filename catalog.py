import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from errors import NotFound, ValidationFailed
from models import OrderItem, Product

logger = logging.getLogger(__name__)


def get_product(session: Session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise NotFound("Product")
    return product


def list_products(
    session: Session,
    offset: int,
    limit: int,
    search: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    min_stock: Optional[int] = None,
) -> Tuple[List[Product], int]:
    conditions = []
    if search:
        conditions.append(Product.name.ilike(f"%{search}%"))
    if min_price is not None:
        conditions.append(Product.price >= min_price)
    if max_price is not None:
        conditions.append(Product.price <= max_price)
    if min_stock is not None:
        conditions.append(Product.stock >= min_stock)

    total = session.scalar(select(func.count(Product.id)).where(*conditions))
    stmt = select(Product).where(*conditions).order_by(Product.id.desc()).offset(offset).limit(limit)
    return list(session.scalars(stmt)), total


def create_product(session: Session, fields: Dict[str, Any]) -> Product:
    product = Product(**fields)
    session.add(product)
    session.flush()
    logger.info("Product %s created (%s, stock %s)", product.id, product.name, product.stock)
    return product


def update_product(session: Session, product_id: int, changes: Dict[str, Any]) -> Product:
    if not changes:
        raise ValidationFailed("No fields to update")
    product = get_product(session, product_id)
    for key, value in changes.items():
        setattr(product, key, value)
    session.flush()
    return product


def set_stock(session: Session, product_id: int, stock: int) -> Product:
    if stock < 0:
        raise ValidationFailed("Stock cannot be negative")
    product = get_product(session, product_id)
    product.stock = stock
    session.flush()
    logger.info("Stock of product %s set to %s", product.id, stock)
    return product


def delete_product(session: Session, product_id: int) -> None:
    product = get_product(session, product_id)
    ordered = session.scalar(select(func.count(OrderItem.id)).where(OrderItem.product_id == product_id))
    if ordered:
        raise ValidationFailed("Cannot delete a product that has been ordered")
    session.delete(product)
    session.flush()
