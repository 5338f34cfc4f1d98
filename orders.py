"""
Checkout, order placement, status transitions and payments.

Every function here runs inside the caller's transaction
(`Database.transaction()`); raising any error aborts the whole unit of work,
so an order, its items, its payment and its stock movements are written
together or not at all.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from addresses import get_address
from cart import cart_lines
from errors import AlreadyPaid, EmptyCart, InsufficientStock, NotFound, ValidationFailed
from models import Order, OrderItem, OrderStatus, Payment, Product, User

logger = logging.getLogger(__name__)

CHECKOUT_PAYMENT_STATUS = "SUCCESS"
PAYMENT_COMPLETED = "completed"

# statuses an admin may set; `paid` is reached only through a payment
ADMIN_STATUSES = (
    OrderStatus.pending.value,
    OrderStatus.processing.value,
    OrderStatus.shipped.value,
    OrderStatus.delivered.value,
    OrderStatus.cancelled.value,
)


@dataclass
class Line:
    product: Product
    quantity: int


def _check_stock(lines: Iterable[Line]) -> None:
    for line in lines:
        if line.product.stock < line.quantity:
            raise InsufficientStock(f"Insufficient stock for product: {line.product.name}")


def _place(session: Session, user_id: int, address_id: int, lines: List[Line]) -> Order:
    # prices are read now and frozen into the items
    total = sum(line.product.price * line.quantity for line in lines)
    order = Order(user_id=user_id, address_id=address_id, status=OrderStatus.pending.value, total_amount=total)
    session.add(order)
    session.flush()

    for line in lines:
        session.add(
            OrderItem(order_id=order.id, product_id=line.product.id, quantity=line.quantity, price=line.product.price)
        )
        line.product.stock -= line.quantity

    session.add(Payment(order_id=order.id, amount=total, status=CHECKOUT_PAYMENT_STATUS))
    session.flush()
    return order


def checkout(session: Session, user_id: int, address_id: int) -> Order:
    """Turn the user's cart into an order, items, stock decrements and a payment."""
    items = cart_lines(session, user_id)
    if not items:
        raise EmptyCart()
    get_address(session, address_id, user_id=user_id)

    lines = [Line(product=item.product, quantity=item.quantity) for item in items]
    _check_stock(lines)

    order = _place(session, user_id, address_id, lines)
    for item in items:
        session.delete(item)
    session.flush()

    logger.info("Order %s placed by user %s from cart (%d lines, total %.2f)", order.id, user_id, len(lines), order.total_amount)
    return order


def place_for_user(session: Session, user_id: int, address_id: int, items: Iterable[Tuple[int, int]]) -> Order:
    """Admin placement from an explicit (product_id, quantity) list; no cart is touched."""
    if session.get(User, user_id) is None:
        raise NotFound("User")
    get_address(session, address_id, user_id=user_id)

    merged: "OrderedDict[int, int]" = OrderedDict()
    for product_id, quantity in items:
        merged[product_id] = merged.get(product_id, 0) + quantity

    lines = []
    for product_id, quantity in merged.items():
        product = session.get(Product, product_id)
        if product is None:
            raise NotFound(message=f"Product with ID {product_id} not found")
        lines.append(Line(product=product, quantity=quantity))
    _check_stock(lines)

    order = _place(session, user_id, address_id, lines)
    logger.info("Order %s placed for user %s by admin (%d lines, total %.2f)", order.id, user_id, len(lines), order.total_amount)
    return order


def set_status(session: Session, order_id: int, status: str) -> Order:
    if status not in ADMIN_STATUSES:
        raise ValidationFailed(f"Invalid status. Must be one of: {', '.join(ADMIN_STATUSES)}")
    order = session.scalars(
        select(Order).options(selectinload(Order.items).selectinload(OrderItem.product)).where(Order.id == order_id)
    ).first()
    if order is None:
        raise NotFound("Order")

    if status == OrderStatus.cancelled.value and order.status != OrderStatus.cancelled.value:
        for item in order.items:
            item.product.stock += item.quantity
        logger.info("Order %s cancelled; stock restored for %d items", order.id, len(order.items))

    order.status = status
    session.flush()
    return order


def process_payment(
    session: Session, user_id: int, order_id: int, amount: float, method: str, transaction_id: str
) -> Payment:
    order = session.scalars(select(Order).where(Order.id == order_id, Order.user_id == user_id)).first()
    if order is None:
        raise NotFound("Order")
    if order.status == OrderStatus.paid.value:
        raise AlreadyPaid()

    payment = Payment(
        order_id=order.id,
        amount=amount,
        method=method,
        transaction_id=transaction_id,
        status=PAYMENT_COMPLETED,
    )
    session.add(payment)
    order.status = OrderStatus.paid.value
    session.flush()
    logger.info("Payment %s recorded for order %s (%s %.2f)", payment.id, order.id, method, amount)
    return payment


# ---------- Queries ----------

def _with_details(stmt):
    return stmt.options(
        selectinload(Order.address),
        selectinload(Order.items).selectinload(OrderItem.product),
        selectinload(Order.payments),
    )


def list_orders(
    session: Session,
    offset: int,
    limit: int,
    user_id: Optional[int] = None,
    status: Optional[str] = None,
    with_user: bool = False,
) -> Tuple[List[Order], int]:
    conditions = []
    if user_id is not None:
        conditions.append(Order.user_id == user_id)
    if status:
        conditions.append(Order.status == status)

    total = session.scalar(select(func.count(Order.id)).where(*conditions))
    stmt = _with_details(select(Order).where(*conditions))
    if with_user:
        stmt = stmt.options(selectinload(Order.user))
    stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit)
    return list(session.scalars(stmt)), total


def get_order(session: Session, order_id: int, user_id: Optional[int] = None) -> Order:
    stmt = _with_details(select(Order).where(Order.id == order_id)).options(selectinload(Order.user))
    if user_id is not None:
        stmt = stmt.where(Order.user_id == user_id)
    order = session.scalars(stmt).first()
    if order is None:
        raise NotFound("Order")
    return order


def list_payments(
    session: Session,
    offset: int,
    limit: int,
    user_id: Optional[int] = None,
    status: Optional[str] = None,
) -> Tuple[List[Payment], int]:
    conditions = []
    if user_id is not None:
        conditions.append(Order.user_id == user_id)
    if status:
        conditions.append(Payment.status == status)

    base = select(Payment).join(Payment.order).where(*conditions)
    total = session.scalar(select(func.count(Payment.id)).join(Payment.order).where(*conditions))
    stmt = (
        base.options(selectinload(Payment.order).selectinload(Order.user))
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(session.scalars(stmt)), total


def get_payment(session: Session, user_id: int, payment_id: int) -> Payment:
    payment = session.scalars(
        select(Payment)
        .join(Payment.order)
        .options(selectinload(Payment.order))
        .where(Payment.id == payment_id, Order.user_id == user_id)
    ).first()
    if payment is None:
        raise NotFound("Payment")
    return payment
