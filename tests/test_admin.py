import config
from accounts import seed_super_admin
from models import Admin, AdminType


def test_admin_login(client, factory):
    admin = factory.admin(password="adminpass")
    resp = client.post("/admin/login", json={"email": admin.email, "password": "adminpass"})
    assert resp.status_code == 200
    assert resp.json()["data"]["type"] == "ADMIN"

    headers = {"Authorization": f"Bearer {resp.json()['token']}"}
    assert client.get("/admin/profile", headers=headers).json()["data"]["id"] == admin.id
    assert client.post("/admin/logout", headers=headers).status_code == 200
    assert client.get("/admin/profile", headers=headers).status_code == 401


def test_only_super_admin_manages_admins(client, admin_headers):
    resp = client.post(
        "/admin/register",
        json={"email": "x@example.com", "password": "secret123", "name": "Xavier", "phone": "7000000000"},
        headers=admin_headers,
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Super admin access required"
    assert client.get("/admin", headers=admin_headers).status_code == 403


def test_super_admin_registers_and_lists_admins(client, super_admin):
    root, headers = super_admin
    resp = client.post(
        "/admin/register",
        json={"email": "ops@example.com", "password": "secret123", "name": "Ops", "phone": "7000000001"},
        headers=headers,
    )
    assert resp.status_code == 201
    created = resp.json()["data"]
    assert created["type"] == "ADMIN"
    assert created["createdBy"] == root.id

    dup = client.post(
        "/admin/register",
        json={"email": "ops@example.com", "password": "secret123", "name": "Ops", "phone": "7000000002"},
        headers=headers,
    )
    assert dup.status_code == 400

    listing = client.get("/admin", params={"type": "ADMIN"}, headers=headers).json()
    assert [a["id"] for a in listing["data"]] == [created["id"]]
    assert client.get(f"/admin/{created['id']}", headers=headers).json()["data"]["email"] == "ops@example.com"


def test_super_admin_is_protected(client, factory, super_admin):
    root, headers = super_admin
    other_root = factory.admin(type=AdminType.SUPER_ADMIN)

    resp = client.put(f"/admin/{other_root.id}", json={"type": "ADMIN"}, headers=headers)
    assert resp.status_code == 403
    resp = client.put(f"/admin/{other_root.id}/status", json={"status": 0}, headers=headers)
    assert resp.status_code == 403
    resp = client.delete(f"/admin/{other_root.id}", headers=headers)
    assert resp.status_code == 403


def test_deactivate_and_delete_admin(client, factory, super_admin):
    _, headers = super_admin
    target = factory.admin()
    target_headers = factory.admin_headers(target)

    assert client.put(f"/admin/{target.id}/status", json={"status": 0}, headers=headers).status_code == 200
    assert client.get("/admin/profile", headers=target_headers).status_code == 401
    assert client.post("/admin/login", json={"email": target.email, "password": "secret123"}).status_code == 401

    assert client.delete(f"/admin/{target.id}", headers=headers).status_code == 200
    assert client.get(f"/admin/{target.id}", headers=headers).status_code == 404


def test_admin_user_management(client, factory, admin_headers):
    resp = client.post(
        "/admin/users",
        json={
            "email": "cust@example.com",
            "password": "secret123",
            "name": "Customer",
            "phone": "9123456789",
            "age": 40,
            "dob": "1984-02-02",
        },
        headers=admin_headers,
    )
    assert resp.status_code == 201
    user_id = resp.json()["data"]["id"]
    assert client.post("/auth/login", json={"phone": "9123456789", "password": "secret123"}).status_code == 200

    detail = client.get(f"/admin/users/{user_id}", headers=admin_headers).json()["data"]
    assert detail["creator"]["email"].startswith("admin")

    listing = client.get("/admin/users", params={"search": "Custom"}, headers=admin_headers).json()
    assert [u["id"] for u in listing["data"]] == [user_id]

    resp = client.put(f"/admin/users/{user_id}", json={"age": 41}, headers=admin_headers)
    assert resp.json()["data"]["age"] == 41

    assert client.delete(f"/admin/users/{user_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/admin/users/{user_id}", headers=admin_headers).status_code == 404


def test_user_with_orders_cannot_be_deleted(client, factory, admin_headers, shopper):
    user, address, headers = shopper
    product = factory.product()
    client.post(f"/user/products/{product.id}/add-to-cart", json={"quantity": 1}, headers=headers)
    client.post("/user/cart/checkout", json={"addressId": address.id}, headers=headers)

    resp = client.delete(f"/admin/users/{user.id}", headers=admin_headers)
    assert resp.status_code == 400
    orders = client.get(f"/admin/users/{user.id}/orders", headers=admin_headers).json()
    assert orders["pagination"]["totalItems"] == 1


def test_admin_product_management(client, admin_headers):
    resp = client.post(
        "/admin/products",
        json={"name": "Kettle", "description": "Electric kettle, 1.5 litres", "price": 1299.0, "stock": 12},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    product_id = resp.json()["data"]["id"]

    assert client.put(f"/admin/products/{product_id}", json={}, headers=admin_headers).status_code == 400
    resp = client.put(f"/admin/products/{product_id}/stock", json={"stock": 3}, headers=admin_headers)
    assert resp.json()["data"]["stock"] == 3
    assert client.put(f"/admin/products/{product_id}/stock", json={"stock": -1}, headers=admin_headers).status_code == 422

    filtered = client.get("/admin/products", params={"minPrice": 1000, "minStock": 5}, headers=admin_headers).json()
    assert filtered["data"] == []
    filtered = client.get("/admin/products", params={"maxPrice": 2000}, headers=admin_headers).json()
    assert [p["id"] for p in filtered["data"]] == [product_id]

    assert client.get(f"/products/{product_id}").json()["data"]["name"] == "Kettle"
    assert client.delete(f"/admin/products/{product_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/products/{product_id}").status_code == 404


def test_ordered_product_cannot_be_deleted(client, factory, admin_headers, shopper):
    _, address, headers = shopper
    product = factory.product()
    client.post(f"/user/products/{product.id}/add-to-cart", json={"quantity": 1}, headers=headers)
    client.post("/user/cart/checkout", json={"addressId": address.id}, headers=headers)
    assert client.delete(f"/admin/products/{product.id}", headers=admin_headers).status_code == 400


def test_admin_addresses(client, factory, admin_headers):
    user = factory.user()
    resp = client.post(
        "/admin/addresses",
        json={
            "userId": user.id,
            "area": "Park Street",
            "division": "East",
            "city": "Kolkata",
            "district": "Kolkata",
            "pincode": "700016",
            "state": "West Bengal",
        },
        headers=admin_headers,
    )
    assert resp.status_code == 201
    address = resp.json()["data"]
    assert address["country"] == "India"
    assert address["user"]["id"] == user.id

    found = client.get("/admin/addresses", params={"search": "kolkata"}, headers=admin_headers).json()
    assert [a["id"] for a in found["data"]] == [address["id"]]
    assert client.get(f"/admin/addresses/{user.id}", headers=admin_headers).json()["pagination"]["totalItems"] == 1
    detail = client.get(f"/admin/addresses/detail/{address['id']}", headers=admin_headers).json()["data"]
    assert detail["pincode"] == "700016"

    resp = client.put(f"/admin/addresses/{address['id']}", json={"city": "Howrah"}, headers=admin_headers)
    assert resp.json()["data"]["city"] == "Howrah"
    assert client.delete(f"/admin/addresses/{address['id']}", headers=admin_headers).status_code == 200


def test_user_addresses(client, shopper):
    _, address, headers = shopper
    listing = client.get("/user/addresses", headers=headers).json()
    assert [a["id"] for a in listing["data"]] == [address.id]

    resp = client.post(
        "/user/addresses",
        json={
            "area": "Bandra",
            "division": "West",
            "city": "Mumbai",
            "district": "Mumbai Suburban",
            "pincode": "40005",
            "state": "Maharashtra",
        },
        headers=headers,
    )
    assert resp.status_code == 422
    assert resp.json()["errors"][0]["field"] == "pincode"


def test_seed_super_admin(db, monkeypatch):
    monkeypatch.setattr(config, "SUPER_ADMIN_EMAIL", "root@example.com")
    monkeypatch.setattr(config, "SUPER_ADMIN_PASSWORD", "rootpass")
    with db.transaction() as session:
        assert seed_super_admin(session) is not None
    with db.transaction() as session:
        assert seed_super_admin(session) is None
        admin = session.query(Admin).filter_by(email="root@example.com").one()
        assert admin.type == AdminType.SUPER_ADMIN


def test_pincode_must_be_six_digits(client, shopper):
    _, address, headers = shopper
    resp = client.post(
        "/user/addresses",
        json={
            "area": "Salt Lake",
            "division": "Sector V",
            "city": "Kolkata",
            "district": "North 24 Parganas",
            "pincode": "ABCDEF",
            "state": "West Bengal",
        },
        headers=headers,
    )
    assert resp.status_code == 422
    assert resp.json()["errors"][0]["field"] == "pincode"

    resp = client.put(f"/user/addresses/{address.id}", json={"pincode": "56 001"}, headers=headers)
    assert resp.status_code == 422
    assert resp.json()["errors"][0]["field"] == "pincode"
