"""
Back-office routes.

Every route here needs an admin token; managing other admins needs a
SUPER_ADMIN token. Routes under `/admin/{admin_id}` are declared last so the
fixed sub-paths (`/admin/users`, `/admin/orders/payments`, ...) win.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

import accounts
import addresses
import catalog
import orders
from auth import SUBJECT_ADMIN, Identity, issue_admin_token, require_admin, require_super_admin, revoke_token, verify_password
from database import Database, get_database
from errors import Unauthorized
from models import STATUS_ACTIVE, AdminType, OrderStatus
from pagination import PageParams, page_params, paginated
from schemas import (
    AccountStatusChange,
    AddressUpdate,
    AddressWithUser,
    AdminAddressCreate,
    AdminLoginRequest,
    AdminOut,
    AdminProfileUpdate,
    AdminRegisterRequest,
    AdminUpdateRequest,
    OrderOut,
    OrderSummary,
    OrderWithUser,
    PaymentWithOrder,
    PlaceForUserRequest,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    StatusChange,
    StockUpdate,
    UserCreateRequest,
    UserDetail,
    UserOut,
    UserUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# Session
@router.post("/login")
def admin_login(payload: AdminLoginRequest, db: Database = Depends(get_database)):
    with db.transaction() as session:
        admin = accounts.find_admin(session, phone=payload.phone, email=payload.email)
        if admin is None or not verify_password(payload.password, admin.password_hash):
            raise Unauthorized("Invalid credentials")
        if admin.status != STATUS_ACTIVE:
            raise Unauthorized("Account is inactive")
        token = issue_admin_token(session, admin)
        logger.info("Admin %s logged in", admin.id)
        return {"success": True, "message": "Login successful", "token": token, "data": AdminOut.model_validate(admin)}


@router.post("/logout")
def admin_logout(admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        revoke_token(session, SUBJECT_ADMIN, admin.id)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/profile")
def admin_profile(admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        return {"success": True, "data": AdminOut.model_validate(accounts.get_admin(session, admin.id))}


@router.put("/profile")
def update_admin_profile(
    payload: AdminProfileUpdate,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        record = accounts.update_admin(session, accounts.get_admin(session, admin.id), payload.model_dump(exclude_none=True))
        return {"success": True, "message": "Profile updated successfully", "data": AdminOut.model_validate(record)}


@router.post("/register", status_code=201)
def register_admin(
    payload: AdminRegisterRequest,
    admin: Identity = Depends(require_super_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        record = accounts.create_admin(session, payload.model_dump(), created_by=admin.id)
        return {"success": True, "message": "Admin registered successfully", "data": AdminOut.model_validate(record)}


# Users
@router.get("/users")
def list_users(
    status: Optional[int] = Query(None),
    search: Optional[str] = None,
    page: PageParams = Depends(page_params()),
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        rows, total = accounts.list_users(session, page.offset, page.limit, status=status, search=search)
        return paginated([UserOut.model_validate(row) for row in rows], total, page)


@router.post("/users", status_code=201)
def create_user(payload: UserCreateRequest, admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        user = accounts.create_user(session, payload.model_dump(), created_by=admin.id)
        return {"success": True, "message": "User created successfully", "data": UserOut.model_validate(user)}


@router.get("/users/{user_id}")
def get_user(user_id: int, admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        return {"success": True, "data": UserDetail.model_validate(accounts.get_user(session, user_id))}


@router.put("/users/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdateRequest,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        user = accounts.update_user(session, accounts.get_user(session, user_id), payload.model_dump(exclude_none=True))
        return {"success": True, "message": "User updated successfully", "data": UserOut.model_validate(user)}


@router.put("/users/{user_id}/status")
def change_user_status(
    user_id: int,
    payload: AccountStatusChange,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        user = accounts.set_user_status(session, user_id, payload.status)
        return {"success": True, "message": "User status updated", "data": UserOut.model_validate(user)}


@router.delete("/users/{user_id}")
def delete_user(user_id: int, admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        accounts.delete_user(session, user_id)
    return {"success": True, "message": "User deleted successfully"}


@router.get("/users/{user_id}/orders")
def user_orders(
    user_id: int,
    page: PageParams = Depends(page_params()),
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        accounts.get_user(session, user_id)
        rows, total = orders.list_orders(session, page.offset, page.limit, user_id=user_id)
        return paginated([OrderOut.model_validate(row) for row in rows], total, page)


# Admin product management
@router.get("/products")
def list_products(
    search: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    min_stock: Optional[int] = Query(None, alias="minStock", ge=0),
    page: PageParams = Depends(page_params()),
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        rows, total = catalog.list_products(
            session,
            page.offset,
            page.limit,
            search=search,
            min_price=min_price,
            max_price=max_price,
            min_stock=min_stock,
        )
        return paginated([ProductOut.model_validate(row) for row in rows], total, page)


@router.post("/products", status_code=201)
def create_product(payload: ProductCreate, admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        product = catalog.create_product(session, payload.model_dump())
        return {"success": True, "message": "Product created successfully", "data": ProductOut.model_validate(product)}


@router.get("/products/{product_id}")
def get_product(product_id: int, admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        return {"success": True, "data": ProductOut.model_validate(catalog.get_product(session, product_id))}


@router.put("/products/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        product = catalog.update_product(session, product_id, payload.model_dump(exclude_none=True))
        return {"success": True, "message": "Product updated successfully", "data": ProductOut.model_validate(product)}


@router.put("/products/{product_id}/stock")
def update_stock(
    product_id: int,
    payload: StockUpdate,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        product = catalog.set_stock(session, product_id, payload.stock)
        return {"success": True, "message": "Stock updated successfully", "data": ProductOut.model_validate(product)}


@router.delete("/products/{product_id}")
def delete_product(product_id: int, admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        catalog.delete_product(session, product_id)
    return {"success": True, "message": "Product deleted successfully"}


# Orders admin
@router.get("/orders")
def list_orders(
    status: Optional[OrderStatus] = None,
    user_id: Optional[int] = Query(None, alias="userId"),
    page: PageParams = Depends(page_params()),
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        rows, total = orders.list_orders(
            session,
            page.offset,
            page.limit,
            user_id=user_id,
            status=status.value if status else None,
            with_user=True,
        )
        return paginated([OrderWithUser.model_validate(row) for row in rows], total, page)


@router.get("/orders/payments")
def list_payments(
    status: Optional[str] = None,
    page: PageParams = Depends(page_params()),
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        rows, total = orders.list_payments(session, page.offset, page.limit, status=status)
        return paginated([PaymentWithOrder.model_validate(row) for row in rows], total, page)


@router.post("/orders/place_for_user", status_code=201)
def place_for_user(
    payload: PlaceForUserRequest,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        order = orders.place_for_user(
            session,
            payload.user_id,
            payload.address_id,
            [(line.product_id, line.quantity) for line in payload.items],
        )
        logger.info("Admin %s placed order %s for user %s", admin.id, order.id, payload.user_id)
        return {"success": True, "message": "Order placed successfully", "data": OrderOut.model_validate(order)}


@router.get("/orders/{order_id}")
def get_order(order_id: int, admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        return {"success": True, "data": OrderWithUser.model_validate(orders.get_order(session, order_id))}


@router.put("/orders/{order_id}/status")
def change_order_status(
    order_id: int,
    payload: StatusChange,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        order = orders.set_status(session, order_id, payload.status)
        return {"success": True, "message": "Order status updated", "data": OrderSummary.model_validate(order)}


# Addresses
@router.get("/addresses")
def list_addresses(
    user_id: Optional[int] = Query(None, alias="userId"),
    search: Optional[str] = None,
    page: PageParams = Depends(page_params()),
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        rows, total = addresses.list_addresses(session, page.offset, page.limit, user_id=user_id, search=search)
        return paginated([AddressWithUser.model_validate(row) for row in rows], total, page)


@router.post("/addresses", status_code=201)
def create_address(
    payload: AdminAddressCreate,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    fields = payload.model_dump(exclude={"user_id"})
    with db.transaction() as session:
        address = addresses.create_address(session, payload.user_id, fields)
        return {"success": True, "message": "Address added successfully", "data": AddressWithUser.model_validate(address)}


@router.get("/addresses/detail/{address_id}")
def get_address(address_id: int, admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        return {"success": True, "data": AddressWithUser.model_validate(addresses.get_address(session, address_id))}


@router.get("/addresses/{user_id}")
def user_addresses(
    user_id: int,
    page: PageParams = Depends(page_params()),
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        accounts.get_user(session, user_id)
        rows, total = addresses.list_addresses(session, page.offset, page.limit, user_id=user_id)
        return paginated([AddressWithUser.model_validate(row) for row in rows], total, page)


@router.put("/addresses/{address_id}")
def update_address(
    address_id: int,
    payload: AddressUpdate,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        address = addresses.update_address(
            session, addresses.get_address(session, address_id), payload.model_dump(exclude_none=True)
        )
        return {"success": True, "message": "Address updated successfully", "data": AddressWithUser.model_validate(address)}


@router.delete("/addresses/{address_id}")
def delete_address(address_id: int, admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        addresses.delete_address(session, addresses.get_address(session, address_id))
    return {"success": True, "message": "Address deleted successfully"}


# Admin accounts (SUPER_ADMIN only)
@router.get("")
def list_admins(
    type: Optional[AdminType] = None,
    status: Optional[int] = Query(None),
    page: PageParams = Depends(page_params()),
    admin: Identity = Depends(require_super_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        rows, total = accounts.list_admins(session, page.offset, page.limit, admin_type=type, status=status)
        return paginated([AdminOut.model_validate(row) for row in rows], total, page)


@router.get("/{admin_id}")
def get_admin(admin_id: int, admin: Identity = Depends(require_super_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        return {"success": True, "data": AdminOut.model_validate(accounts.get_admin(session, admin_id))}


@router.put("/{admin_id}")
def update_admin(
    admin_id: int,
    payload: AdminUpdateRequest,
    admin: Identity = Depends(require_super_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        record = accounts.update_admin(session, accounts.get_admin(session, admin_id), payload.model_dump(exclude_none=True))
        return {"success": True, "message": "Admin updated successfully", "data": AdminOut.model_validate(record)}


@router.put("/{admin_id}/status")
def change_admin_status(
    admin_id: int,
    payload: AccountStatusChange,
    admin: Identity = Depends(require_super_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        record = accounts.set_admin_status(session, admin_id, payload.status)
        return {"success": True, "message": "Admin status updated", "data": AdminOut.model_validate(record)}


@router.delete("/{admin_id}")
def delete_admin(admin_id: int, admin: Identity = Depends(require_super_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        accounts.delete_admin(session, admin_id)
    return {"success": True, "message": "Admin deleted successfully"}
