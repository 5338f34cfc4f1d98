import pytest
from sqlalchemy import func, select

import orders
from models import CartItem, Order, OrderItem, Payment


def _count(db, model):
    with db.transaction() as session:
        return session.scalar(select(func.count(model.id)))


def _add(client, headers, product, quantity):
    resp = client.post(f"/user/products/{product.id}/add-to-cart", json={"quantity": quantity}, headers=headers)
    assert resp.status_code == 201


def test_checkout_happy_path(client, db, factory, shopper):
    user, address, headers = shopper
    product = factory.product(price=40.0, stock=5)
    _add(client, headers, product, 3)

    resp = client.post("/user/cart/checkout", json={"addressId": address.id}, headers=headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["order"]["totalAmount"] == 120.0
    assert body["order"]["status"] == "pending"

    assert factory.stock_of(product) == 2
    assert client.get("/user/cart", headers=headers).json()["items"] == []

    with db.transaction() as session:
        payments = list(session.scalars(select(Payment)))
        items = list(session.scalars(select(OrderItem)))
    assert len(payments) == 1
    assert payments[0].status == "SUCCESS"
    assert payments[0].amount == 120.0
    assert [(i.product_id, i.quantity, i.price) for i in items] == [(product.id, 3, 40.0)]


def test_checkout_empty_cart(client, db, shopper):
    _, address, headers = shopper
    resp = client.post("/user/cart/checkout", json={"addressId": address.id}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "EmptyCart"
    assert _count(db, Order) == 0
    assert _count(db, Payment) == 0


def test_checkout_with_foreign_address(client, db, factory, shopper):
    _, _, headers = shopper
    other_address = factory.address(factory.user())
    product = factory.product()
    _add(client, headers, product, 1)

    resp = client.post("/user/cart/checkout", json={"addressId": other_address.id}, headers=headers)
    assert resp.status_code == 404
    assert _count(db, Order) == 0
    assert _count(db, CartItem) == 1


def test_checkout_insufficient_stock_writes_nothing(client, db, factory, shopper):
    _, address, headers = shopper
    plenty = factory.product(name="Plenty", stock=10)
    scarce = factory.product(name="Scarce", stock=5)
    _add(client, headers, plenty, 2)
    _add(client, headers, scarce, 5)

    # stock drops after the item went into the cart
    admin_headers = factory.admin_headers(factory.admin())
    client.put(f"/admin/products/{scarce.id}/stock", json={"stock": 2}, headers=admin_headers)

    resp = client.post("/user/cart/checkout", json={"addressId": address.id}, headers=headers)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "InsufficientStock"
    assert "Scarce" in body["message"]

    assert factory.stock_of(plenty) == 10
    assert factory.stock_of(scarce) == 2
    assert _count(db, Order) == 0
    assert _count(db, OrderItem) == 0
    assert _count(db, Payment) == 0
    assert _count(db, CartItem) == 2


def test_failure_after_writes_rolls_everything_back(db, factory, monkeypatch):
    user = factory.user()
    address = factory.address(user)
    product = factory.product(stock=5)
    with db.transaction() as session:
        session.add(CartItem(user_id=user.id, product_id=product.id, quantity=3))

    def broken_payment(**kwargs):
        raise RuntimeError("payment store unavailable")

    monkeypatch.setattr(orders, "Payment", broken_payment)
    with pytest.raises(RuntimeError):
        with db.transaction() as session:
            orders.checkout(session, user.id, address.id)

    assert factory.stock_of(product) == 5
    assert _count(db, Order) == 0
    assert _count(db, OrderItem) == 0
    assert _count(db, CartItem) == 1


def test_checkout_decrements_each_product_by_its_quantity(client, factory, shopper):
    _, address, headers = shopper
    a = factory.product(price=10.0, stock=8)
    b = factory.product(price=5.0, stock=3)
    _add(client, headers, a, 3)
    _add(client, headers, b, 3)

    resp = client.post("/user/cart/checkout", json={"addressId": address.id}, headers=headers)
    assert resp.status_code == 201
    assert resp.json()["order"]["totalAmount"] == 45.0
    assert factory.stock_of(a) == 5
    assert factory.stock_of(b) == 0


def test_order_price_is_frozen(client, factory, shopper):
    _, address, headers = shopper
    product = factory.product(price=10.0, stock=5)
    _add(client, headers, product, 1)
    order_id = client.post("/user/cart/checkout", json={"addressId": address.id}, headers=headers).json()["order"]["id"]

    admin_headers = factory.admin_headers(factory.admin())
    client.put(f"/admin/products/{product.id}", json={"price": 99.0}, headers=admin_headers)

    order = client.get(f"/user/orders/{order_id}", headers=headers).json()["data"]
    assert order["totalAmount"] == 10.0
    assert order["items"][0]["price"] == 10.0
    assert order["payment"]["status"] == "SUCCESS"


def test_place_for_user(client, db, factory, admin_headers):
    user = factory.user()
    address = factory.address(user)
    product = factory.product(price=25.0, stock=6)
    user_headers = factory.user_headers(user)
    client.post(f"/user/products/{product.id}/add-to-cart", json={"quantity": 1}, headers=user_headers)

    resp = client.post(
        "/admin/orders/place_for_user",
        json={"userId": user.id, "addressId": address.id, "items": [{"productId": product.id, "quantity": 4}]},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["totalAmount"] == 100.0
    assert data["userId"] == user.id
    assert factory.stock_of(product) == 2
    # the user's own cart is untouched
    assert len(client.get("/user/cart", headers=user_headers).json()["items"]) == 1


def test_place_for_user_merges_duplicate_lines(client, factory, admin_headers):
    user = factory.user()
    address = factory.address(user)
    product = factory.product(stock=5)

    resp = client.post(
        "/admin/orders/place_for_user",
        json={
            "userId": user.id,
            "addressId": address.id,
            "items": [{"productId": product.id, "quantity": 3}, {"productId": product.id, "quantity": 3}],
        },
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "InsufficientStock"
    assert factory.stock_of(product) == 5


def test_place_for_user_unknown_product(client, db, factory, admin_headers):
    user = factory.user()
    address = factory.address(user)
    resp = client.post(
        "/admin/orders/place_for_user",
        json={"userId": user.id, "addressId": address.id, "items": [{"productId": 404, "quantity": 1}]},
        headers=admin_headers,
    )
    assert resp.status_code == 404
    assert _count(db, Order) == 0


def test_place_for_user_unknown_user(client, factory, admin_headers):
    product = factory.product()
    resp = client.post(
        "/admin/orders/place_for_user",
        json={"userId": 999, "addressId": 1, "items": [{"productId": product.id, "quantity": 1}]},
        headers=admin_headers,
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"


def test_totals_match_item_sum_for_fractional_prices(client, db, factory, shopper):
    _, address, headers = shopper
    a = factory.product(price=0.125, stock=5)
    b = factory.product(price=0.25, stock=5)
    _add(client, headers, a, 1)
    _add(client, headers, b, 2)

    assert client.get("/user/cart", headers=headers).json()["total"] == 0.625

    order = client.post("/user/cart/checkout", json={"addressId": address.id}, headers=headers).json()["order"]
    assert order["totalAmount"] == 0.625

    detail = client.get(f"/user/orders/{order['id']}", headers=headers).json()["data"]
    assert detail["totalAmount"] == sum(item["price"] * item["quantity"] for item in detail["items"])

    with db.transaction() as session:
        payment = session.scalar(select(Payment))
    assert payment.amount == 0.625
