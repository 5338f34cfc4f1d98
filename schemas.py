"""
Request and response schemas for the storefront API.

Request bodies are validated declaratively here; a failing field produces a
structured `{field, message}` entry in the 422 response. Every schema speaks
camelCase on the wire and snake_case in Python.
"""
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel

from models import AdminType

PHONE_PATTERN = r"^\d{10}$"
PINCODE_PATTERN = r"^\d{6}$"

PaymentMethod = Literal["card", "cash", "upi"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------- Auth ----------
class RegisterRequest(CamelModel):
    email: EmailStr
    name: str = Field(..., min_length=2)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    age: int = Field(..., ge=1)
    dob: date


class OtpVerifyRequest(CamelModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    otp: str = Field(..., min_length=6, max_length=6)


class SetPasswordRequest(CamelModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    password: str = Field(..., min_length=6)


class LoginRequest(CamelModel):
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    password: str = Field(..., min_length=6)

    @model_validator(mode="after")
    def one_identifier(self):
        if not self.phone and not self.email:
            raise ValueError("Phone number or email is required")
        if self.phone and self.email:
            raise ValueError("Please provide either phone number OR email, not both")
        return self


class AdminLoginRequest(CamelModel):
    phone: Optional[str] = Field(None, min_length=10)
    email: Optional[EmailStr] = None
    password: str = Field(..., min_length=6)

    @model_validator(mode="after")
    def one_identifier(self):
        if not self.phone and not self.email:
            raise ValueError("Phone number or email is required")
        return self


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None


class OtpSendRequest(CamelModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    new_password: str = Field(..., min_length=6)


# ---------- Addresses ----------
class AddressCreate(CamelModel):
    area: str = Field(..., min_length=2)
    division: str = Field(..., min_length=2)
    city: str = Field(..., min_length=2)
    district: str = Field(..., min_length=2)
    state: str = Field(..., min_length=2)
    pincode: str = Field(..., pattern=PINCODE_PATTERN)
    country: str = Field("India", min_length=2)


class AdminAddressCreate(AddressCreate):
    user_id: int = Field(..., ge=1)


class AddressUpdate(CamelModel):
    area: Optional[str] = Field(None, min_length=2)
    division: Optional[str] = Field(None, min_length=2)
    city: Optional[str] = Field(None, min_length=2)
    district: Optional[str] = Field(None, min_length=2)
    state: Optional[str] = Field(None, min_length=2)
    pincode: Optional[str] = Field(None, pattern=PINCODE_PATTERN)
    country: Optional[str] = Field(None, min_length=2)


# ---------- Catalog ----------
class ProductCreate(CamelModel):
    name: str = Field(..., min_length=2)
    description: str = Field(..., min_length=10)
    price: float = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    image: Optional[str] = None


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2)
    description: Optional[str] = Field(None, min_length=10)
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    image: Optional[str] = None


class StockUpdate(CamelModel):
    stock: int = Field(..., ge=0)


# ---------- Cart / orders / payments ----------
class AddToCartRequest(CamelModel):
    quantity: int = Field(1, ge=1)
    address_id: Optional[int] = Field(None, ge=1)


class CartItemUpdate(CamelModel):
    quantity: int = Field(..., ge=1)


class CheckoutRequest(CamelModel):
    address_id: int = Field(..., ge=1)


class OrderLine(CamelModel):
    product_id: int = Field(..., ge=1)
    quantity: int = Field(..., ge=1)


class PlaceForUserRequest(CamelModel):
    user_id: int = Field(..., ge=1)
    address_id: int = Field(..., ge=1)
    items: List[OrderLine] = Field(..., min_length=1)


class StatusChange(CamelModel):
    status: str = Field(..., min_length=1)


class PaymentRequest(CamelModel):
    order_id: int = Field(..., ge=1)
    amount: float = Field(..., ge=0)
    method: PaymentMethod
    transaction_id: str = Field(..., min_length=1)


# ---------- Administration ----------
class AccountStatusChange(CamelModel):
    status: Literal[0, 1]


class AdminRegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=2)
    phone: str = Field(..., min_length=10)
    type: AdminType = AdminType.ADMIN


class AdminUpdateRequest(CamelModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=2)
    phone: Optional[str] = Field(None, min_length=10)
    type: Optional[AdminType] = None


class AdminProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2)
    phone: Optional[str] = Field(None, min_length=10)


class UserCreateRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=2)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    age: int = Field(..., ge=1)
    dob: date


class UserUpdateRequest(CamelModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=2)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    password: Optional[str] = Field(None, min_length=6)
    age: Optional[int] = Field(None, ge=1)
    dob: Optional[date] = None


# ---------- Responses ----------
class ProductOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    stock: int
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductSnapshot(CamelModel):
    id: int
    name: str
    price: float
    stock: int
    image: Optional[str] = None


class AddressOut(CamelModel):
    id: int
    user_id: int
    area: str
    division: str
    city: str
    district: str
    pincode: str
    state: str
    country: str
    created_at: Optional[datetime] = None


class AdminBrief(CamelModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class AdminOut(AdminBrief):
    type: AdminType
    status: int
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


class UserBrief(CamelModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone: str


class UserOut(UserBrief):
    age: Optional[int] = None
    dob: Optional[date] = None
    status: int
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


class UserDetail(UserOut):
    addresses: List[AddressOut] = []
    creator: Optional[AdminBrief] = None


class AddressWithUser(AddressOut):
    user: Optional[UserBrief] = None


class CartItemOut(CamelModel):
    id: int
    user_id: int
    product_id: int
    quantity: int
    address_id: Optional[int] = None
    created_at: Optional[datetime] = None
    product: ProductSnapshot


class OrderItemOut(CamelModel):
    id: int
    product_id: int
    quantity: int
    price: float
    product: Optional[ProductSnapshot] = None


class PaymentOut(CamelModel):
    id: int
    order_id: int
    amount: float
    method: Optional[str] = None
    transaction_id: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None


class OrderSummary(CamelModel):
    id: int
    status: str
    total_amount: float


class OrderOut(OrderSummary):
    user_id: int
    address_id: Optional[int] = None
    created_at: Optional[datetime] = None
    address: Optional[AddressOut] = None
    items: List[OrderItemOut] = []
    payment: Optional[PaymentOut] = None


class OrderWithUser(OrderOut):
    user: Optional[UserBrief] = None


class PaymentWithOrder(PaymentOut):
    order: Optional[OrderSummary] = None


class OtpOut(CamelModel):
    id: int
    phone: str
    email: Optional[str] = None
    verified: bool
    confirmed_at: Optional[datetime] = None
    expires_at: datetime
    created_at: Optional[datetime] = None
