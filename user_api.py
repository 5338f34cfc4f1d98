"""Shopper-facing routes: profile, addresses, catalog, cart, orders and payments."""
from typing import Optional

from fastapi import APIRouter, Depends

import addresses
import cart
import catalog
import orders
from accounts import get_user, update_user
from auth import Identity, require_user
from database import Database, get_database
from pagination import PageParams, page_params, paginated
from schemas import (
    AddressCreate,
    AddressOut,
    AddressUpdate,
    AddToCartRequest,
    CartItemOut,
    CartItemUpdate,
    CheckoutRequest,
    OrderOut,
    PaymentOut,
    PaymentRequest,
    PaymentWithOrder,
    ProductOut,
    ProfileUpdate,
    UserDetail,
)

router = APIRouter(tags=["user"])


# Profile
@router.get("/user/profile")
def get_profile(user: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        return {"success": True, "data": UserDetail.model_validate(get_user(session, user.id))}


@router.put("/user/profile")
def update_profile(payload: ProfileUpdate, user: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        record = update_user(session, get_user(session, user.id), payload.model_dump(exclude_none=True))
        return {"success": True, "message": "Profile updated successfully", "data": UserDetail.model_validate(record)}


# Addresses
@router.post("/user/addresses", status_code=201)
def add_address(payload: AddressCreate, user: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        address = addresses.create_address(session, user.id, payload.model_dump())
        return {"success": True, "message": "Address added successfully", "data": AddressOut.model_validate(address)}


@router.get("/user/addresses")
def list_addresses(
    page: PageParams = Depends(page_params()),
    user: Identity = Depends(require_user),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        rows, total = addresses.list_addresses(session, page.offset, page.limit, user_id=user.id)
        return paginated([AddressOut.model_validate(row) for row in rows], total, page)


@router.get("/user/addresses/{address_id}")
def get_address(address_id: int, user: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        address = addresses.get_address(session, address_id, user_id=user.id)
        return {"success": True, "data": AddressOut.model_validate(address)}


@router.put("/user/addresses/{address_id}")
def update_address(
    address_id: int,
    payload: AddressUpdate,
    user: Identity = Depends(require_user),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        address = addresses.get_address(session, address_id, user_id=user.id)
        address = addresses.update_address(session, address, payload.model_dump(exclude_none=True))
        return {"success": True, "message": "Address updated successfully", "data": AddressOut.model_validate(address)}


@router.delete("/user/addresses/{address_id}")
def delete_address(address_id: int, user: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        addresses.delete_address(session, addresses.get_address(session, address_id, user_id=user.id))
    return {"success": True, "message": "Address deleted successfully"}


# Products public endpoints
@router.get("/products")
def list_products(
    search: Optional[str] = None,
    page: PageParams = Depends(page_params()),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        rows, total = catalog.list_products(session, page.offset, page.limit, search=search)
        return paginated([ProductOut.model_validate(row) for row in rows], total, page)


@router.get("/products/{product_id}")
def get_product(product_id: int, db: Database = Depends(get_database)):
    with db.transaction() as session:
        return {"success": True, "data": ProductOut.model_validate(catalog.get_product(session, product_id))}


# Cart
@router.post("/user/products/{product_id}/add-to-cart", status_code=201)
def add_to_cart(
    product_id: int,
    payload: Optional[AddToCartRequest] = None,
    user: Identity = Depends(require_user),
    db: Database = Depends(get_database),
):
    payload = payload or AddToCartRequest()
    with db.transaction() as session:
        cart.add_to_cart(session, user.id, product_id, payload.quantity, payload.address_id)
    return {"success": True, "message": "Product added to cart"}


@router.get("/user/cart")
def get_cart(user: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        items, total = cart.get_cart(session, user.id)
        return {"success": True, "items": [CartItemOut.model_validate(item) for item in items], "total": total}


@router.put("/user/cart/{cart_id}")
def update_cart_item(
    cart_id: int,
    payload: CartItemUpdate,
    user: Identity = Depends(require_user),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        item = cart.update_cart_item(session, user.id, cart_id, payload.quantity)
        return {"success": True, "message": "Cart updated successfully", "data": CartItemOut.model_validate(item)}


@router.delete("/user/cart/{cart_id}")
def remove_cart_item(cart_id: int, user: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        cart.remove_cart_item(session, user.id, cart_id)
    return {"success": True, "message": "Item removed from cart"}


@router.post("/user/cart/checkout", status_code=201)
def checkout(payload: CheckoutRequest, user: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        order = orders.checkout(session, user.id, payload.address_id)
        summary = {"id": order.id, "totalAmount": order.total_amount, "status": order.status}
    return {"success": True, "message": "Order placed successfully", "order": summary}


# Orders
@router.get("/user/orders")
def list_orders(
    page: PageParams = Depends(page_params()),
    user: Identity = Depends(require_user),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        rows, total = orders.list_orders(session, page.offset, page.limit, user_id=user.id)
        return paginated([OrderOut.model_validate(row) for row in rows], total, page)


@router.get("/user/orders/{order_id}")
def get_order(order_id: int, user: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        return {"success": True, "data": OrderOut.model_validate(orders.get_order(session, order_id, user_id=user.id))}


# Payments
@router.post("/user/payments", status_code=201)
def make_payment(payload: PaymentRequest, user: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        payment = orders.process_payment(
            session, user.id, payload.order_id, payload.amount, payload.method, payload.transaction_id
        )
        return {"success": True, "message": "Payment processed successfully", "data": PaymentOut.model_validate(payment)}


@router.get("/user/payments")
def list_payments(
    page: PageParams = Depends(page_params()),
    user: Identity = Depends(require_user),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        rows, total = orders.list_payments(session, page.offset, page.limit, user_id=user.id)
        return paginated([PaymentWithOrder.model_validate(row) for row in rows], total, page)


@router.get("/user/payments/{payment_id}")
def get_payment(payment_id: int, user: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        payment = orders.get_payment(session, user.id, payment_id)
        return {"success": True, "data": PaymentWithOrder.model_validate(payment)}
