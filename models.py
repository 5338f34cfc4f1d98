"""
ORM models for the storefront.

Each class maps one table. Cart rows are unique per (user, product); order
items snapshot the unit price; auth tokens hold the single live token of a
user or admin.
"""
import enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base, utcnow

STATUS_ACTIVE = 1
STATUS_INACTIVE = 0


class AdminType(str, enum.Enum):
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class OrderStatus(str, enum.Enum):
    pending = "pending"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    paid = "paid"


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Admin(TimestampMixin, Base):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True)
    name = Column(String(120))
    email = Column(String(255), index=True)
    phone = Column(String(20), index=True)
    password_hash = Column(String(255), nullable=False)
    type = Column(SQLEnum(AdminType, native_enum=False), nullable=False, default=AdminType.ADMIN)
    status = Column(Integer, nullable=False, default=STATUS_ACTIVE)
    created_by = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)

    @property
    def is_super(self) -> bool:
        return self.type == AdminType.SUPER_ADMIN


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(120))
    email = Column(String(255), index=True)
    phone = Column(String(10), nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)
    status = Column(Integer, nullable=False, default=STATUS_ACTIVE)
    age = Column(Integer)
    dob = Column(Date)
    # set once registration OTP is confirmed; unlocks set-password
    temp_token = Column(Boolean, nullable=False, default=False)
    created_by = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)

    creator = relationship("Admin")
    addresses = relationship("Address", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    orders = relationship("Order", back_populates="user")
    otps = relationship("Otp", back_populates="user", cascade="all, delete-orphan")
    cart_items = relationship("CartItem", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)


class Address(TimestampMixin, Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    area = Column(String(255), nullable=False)
    division = Column(String(255), nullable=False)
    city = Column(String(120), nullable=False)
    district = Column(String(120), nullable=False)
    pincode = Column(String(6), nullable=False)
    state = Column(String(120), nullable=False)
    country = Column(String(120), nullable=False, default="India")

    user = relationship("User", back_populates="addresses")


class Product(TimestampMixin, Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    price = Column(Float, nullable=False, default=0.0)
    stock = Column(Integer, nullable=False, default=0)
    image = Column(String(500))


class CartItem(TimestampMixin, Base):
    __tablename__ = "carts"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_cart_user_product"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    address_id = Column(Integer, ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True)

    user = relationship("User", back_populates="cart_items")
    product = relationship("Product")
    address = relationship("Address")


class Order(TimestampMixin, Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    address_id = Column(Integer, ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), nullable=False, default=OrderStatus.pending.value)
    total_amount = Column(Float, nullable=False, default=0.0)

    user = relationship("User", back_populates="orders")
    address = relationship("Address")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")
    payments = relationship("Payment", back_populates="order", cascade="all, delete-orphan", order_by="Payment.id")

    @property
    def payment(self):
        return self.payments[-1] if self.payments else None


class OrderItem(TimestampMixin, Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    # unit price frozen at order time
    price = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


class Payment(TimestampMixin, Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    method = Column(String(20))
    transaction_id = Column(String(255))
    status = Column(String(20), nullable=False, default="SUCCESS")

    order = relationship("Order", back_populates="payments")


class Otp(TimestampMixin, Base):
    __tablename__ = "otps"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    phone = Column(String(10), nullable=False, index=True)
    email = Column(String(255))
    name = Column(String(120))
    code = Column(String(6), nullable=False)
    # also flipped when a newer code supersedes this one
    verified = Column(Boolean, nullable=False, default=False)
    # set only when the holder actually confirmed the code
    confirmed_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="otps")


class AuthToken(Base):
    __tablename__ = "auth_tokens"
    __table_args__ = (UniqueConstraint("subject_type", "subject_id", name="uq_auth_token_subject"),)

    id = Column(Integer, primary_key=True)
    subject_type = Column(String(10), nullable=False)
    subject_id = Column(Integer, nullable=False)
    token = Column(Text, nullable=False)
    issued_at = Column(DateTime, default=utcnow, nullable=False)
