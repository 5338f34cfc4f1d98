"""Per-user cart. One row per (user, product); repeat adds merge quantities."""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from addresses import get_address
from errors import InsufficientStock, NotFound, ValidationFailed
from models import CartItem, Product

logger = logging.getLogger(__name__)


def add_to_cart(
    session: Session,
    user_id: int,
    product_id: int,
    quantity: int = 1,
    address_id: Optional[int] = None,
) -> CartItem:
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1")

    product = session.get(Product, product_id)
    if product is None:
        raise NotFound("Product")
    if address_id is not None:
        get_address(session, address_id, user_id=user_id)

    item = session.scalars(
        select(CartItem).where(CartItem.user_id == user_id, CartItem.product_id == product_id)
    ).first()
    requested = quantity + (item.quantity if item else 0)
    if product.stock < requested:
        raise InsufficientStock()

    if item is None:
        item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity, address_id=address_id)
        session.add(item)
    else:
        item.quantity = requested
        if address_id is not None:
            item.address_id = address_id
    session.flush()
    logger.debug("Cart item %s for user %s now holds %s of product %s", item.id, user_id, item.quantity, product_id)
    return item


def _owned_item(session: Session, user_id: int, cart_id: int) -> CartItem:
    item = session.scalars(
        select(CartItem)
        .options(joinedload(CartItem.product))
        .where(CartItem.id == cart_id, CartItem.user_id == user_id)
    ).first()
    if item is None:
        raise NotFound("Cart item")
    return item


def update_cart_item(session: Session, user_id: int, cart_id: int, quantity: int) -> CartItem:
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1")
    item = _owned_item(session, user_id, cart_id)
    if item.product.stock < quantity:
        raise InsufficientStock()
    item.quantity = quantity
    session.flush()
    return item


def remove_cart_item(session: Session, user_id: int, cart_id: int) -> None:
    item = _owned_item(session, user_id, cart_id)
    session.delete(item)
    session.flush()


def cart_lines(session: Session, user_id: int) -> List[CartItem]:
    return list(
        session.scalars(
            select(CartItem)
            .options(joinedload(CartItem.product))
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at.desc(), CartItem.id.desc())
        )
    )


def get_cart(session: Session, user_id: int) -> Tuple[List[CartItem], float]:
    items = cart_lines(session, user_id)
    total = sum(item.product.price * item.quantity for item in items)
    return items, total
