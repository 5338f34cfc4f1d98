import pytest


@pytest.fixture
def placed_order(client, factory, shopper):
    _, address, headers = shopper
    a = factory.product(price=10.0, stock=10)
    b = factory.product(price=20.0, stock=4)
    client.post(f"/user/products/{a.id}/add-to-cart", json={"quantity": 3}, headers=headers)
    client.post(f"/user/products/{b.id}/add-to-cart", json={"quantity": 2}, headers=headers)
    order = client.post("/user/cart/checkout", json={"addressId": address.id}, headers=headers).json()["order"]
    return order, a, b


def test_cancel_restores_stock(client, factory, admin_headers, placed_order):
    order, a, b = placed_order
    assert factory.stock_of(a) == 7
    assert factory.stock_of(b) == 2

    resp = client.put(f"/admin/orders/{order['id']}/status", json={"status": "cancelled"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"] == {"id": order["id"], "status": "cancelled", "totalAmount": 70.0}
    assert factory.stock_of(a) == 10
    assert factory.stock_of(b) == 4


def test_cancel_twice_restores_once(client, factory, admin_headers, placed_order):
    order, a, b = placed_order
    for _ in range(2):
        client.put(f"/admin/orders/{order['id']}/status", json={"status": "cancelled"}, headers=admin_headers)
    assert factory.stock_of(a) == 10
    assert factory.stock_of(b) == 4


def test_other_transitions_leave_stock_alone(client, factory, admin_headers, placed_order):
    order, a, _ = placed_order
    for status in ("processing", "shipped", "pending", "delivered"):
        resp = client.put(f"/admin/orders/{order['id']}/status", json={"status": status}, headers=admin_headers)
        assert resp.json()["data"]["status"] == status
    assert factory.stock_of(a) == 7


def test_leaving_cancelled_does_not_take_stock_again(client, factory, admin_headers, placed_order):
    order, a, _ = placed_order
    client.put(f"/admin/orders/{order['id']}/status", json={"status": "cancelled"}, headers=admin_headers)
    client.put(f"/admin/orders/{order['id']}/status", json={"status": "processing"}, headers=admin_headers)
    assert factory.stock_of(a) == 10


def test_invalid_status_rejected(client, factory, admin_headers, placed_order):
    order, a, _ = placed_order
    for status in ("lost", "paid"):
        resp = client.put(f"/admin/orders/{order['id']}/status", json={"status": status}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "ValidationError"
    detail = client.get(f"/admin/orders/{order['id']}", headers=admin_headers).json()["data"]
    assert detail["status"] == "pending"
    assert factory.stock_of(a) == 7


def test_status_of_missing_order(client, admin_headers):
    resp = client.put("/admin/orders/999/status", json={"status": "shipped"}, headers=admin_headers)
    assert resp.status_code == 404


def test_status_change_needs_admin(client, shopper, placed_order):
    _, _, headers = shopper
    order, _, _ = placed_order
    resp = client.put(f"/admin/orders/{order['id']}/status", json={"status": "cancelled"}, headers=headers)
    assert resp.status_code == 403


def test_user_order_listing(client, factory, shopper, placed_order):
    _, _, headers = shopper
    body = client.get("/user/orders", headers=headers).json()
    assert body["pagination"]["totalItems"] == 1
    order = body["data"][0]
    assert order["address"]["city"] == "Bengaluru"
    assert sorted(item["quantity"] for item in order["items"]) == [2, 3]

    stranger = factory.user_headers(factory.user())
    assert client.get(f"/user/orders/{order['id']}", headers=stranger).status_code == 404


def test_admin_order_filters(client, admin_headers, shopper, placed_order):
    user, _, _ = shopper
    order, _, _ = placed_order
    body = client.get("/admin/orders", params={"status": "pending", "userId": user.id}, headers=admin_headers).json()
    assert [o["id"] for o in body["data"]] == [order["id"]]
    assert body["data"][0]["user"]["id"] == user.id

    body = client.get("/admin/orders", params={"status": "shipped"}, headers=admin_headers).json()
    assert body["data"] == []

    detail = client.get(f"/admin/orders/{order['id']}", headers=admin_headers).json()["data"]
    assert detail["totalAmount"] == 70.0
