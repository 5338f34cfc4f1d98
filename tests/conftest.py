from datetime import date

import pytest
from fastapi.testclient import TestClient

from auth import get_password_hash, issue_admin_token, issue_user_token
from main import create_app
from models import STATUS_ACTIVE, Address, Admin, AdminType, Product, User


@pytest.fixture
def app(tmp_path):
    return create_app(f"sqlite:///{tmp_path / 'test.db'}")


@pytest.fixture
def client(app):
    # entering the client runs startup, which creates the tables
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app, client):
    return app.state.db


class Factory:
    """Creates rows straight through the data layer and hands back detached objects."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self):
        self._seq += 1
        return self._seq

    def user(self, password="secret123", **fields):
        n = self._next()
        values = {
            "name": f"User {n}",
            "email": f"user{n}@example.com",
            "phone": f"9{n:09d}",
            "age": 30,
            "dob": date(1994, 1, 1),
            "status": STATUS_ACTIVE,
        }
        values.update(fields)
        with self.db.transaction() as session:
            user = User(**values)
            if password:
                user.password_hash = get_password_hash(password)
            session.add(user)
        return user

    def admin(self, type=AdminType.ADMIN, password="secret123", **fields):
        n = self._next()
        values = {
            "name": f"Admin {n}",
            "email": f"admin{n}@example.com",
            "phone": f"8{n:09d}",
            "status": STATUS_ACTIVE,
            "type": type,
        }
        values.update(fields)
        with self.db.transaction() as session:
            admin = Admin(password_hash=get_password_hash(password), **values)
            session.add(admin)
        return admin

    def product(self, price=100.0, stock=10, **fields):
        n = self._next()
        values = {"name": f"Product {n}", "description": "A fine product for testing", "price": price, "stock": stock}
        values.update(fields)
        with self.db.transaction() as session:
            product = Product(**values)
            session.add(product)
        return product

    def address(self, user, **fields):
        values = {
            "area": "MG Road",
            "division": "Central",
            "city": "Bengaluru",
            "district": "Bengaluru Urban",
            "pincode": "560001",
            "state": "Karnataka",
        }
        values.update(fields)
        with self.db.transaction() as session:
            address = Address(user_id=user.id, **values)
            session.add(address)
        return address

    def user_headers(self, user):
        with self.db.transaction() as session:
            token = issue_user_token(session, session.get(User, user.id))
        return {"Authorization": f"Bearer {token}"}

    def admin_headers(self, admin):
        with self.db.transaction() as session:
            token = issue_admin_token(session, session.get(Admin, admin.id))
        return {"Authorization": f"Bearer {token}"}

    def stock_of(self, product):
        with self.db.transaction() as session:
            return session.get(Product, product.id).stock


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def shopper(factory):
    """A user with one address and a valid token."""
    user = factory.user()
    address = factory.address(user)
    return user, address, factory.user_headers(user)


@pytest.fixture
def admin_headers(factory):
    return factory.admin_headers(factory.admin())


@pytest.fixture
def super_admin(factory):
    admin = factory.admin(type=AdminType.SUPER_ADMIN)
    return admin, factory.admin_headers(admin)
