from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from .models import Role


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
PASSWORD_MAX_BYTES = 72


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise PydanticCustomError(
            "password_too_long", "Password must be at most {max_bytes} bytes", {"max_bytes": PASSWORD_MAX_BYTES}
        )
    return value


# --- USER ---
class RegisterIn(CamelModel):
    email: EmailStr
    name: str = Field(min_length=3)
    password: str = Field(min_length=6, max_length=72)
    confirm_password: str = Field(min_length=6, max_length=72)

    @field_validator("password", "confirm_password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "password" in info.data and value != info.data["password"]:
            raise PydanticCustomError("password_mismatch", "Password does not match")
        return value


class LoginIn(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class TokenData(BaseModel):
    id: int
    email: str
    role: str


class CurrentUser(TokenData):
    """Identity attached to a request once the auth gate lets it through."""


class LoginOut(BaseModel):
    message: str
    user: TokenData
    token: str


class UserOut(CamelModel):
    id: int
    email: str
    name: str
    role: str


class CurrentUserOut(BaseModel):
    user: UserOut


class UserAdminOut(CamelModel):
    id: int
    email: str
    role: str
    enabled: bool
    address: Optional[str] = None


class UserBrief(CamelModel):
    id: int
    email: str
    address: Optional[str] = None


class ChangeStatusIn(CamelModel):
    id: int
    enabled: bool


class ChangeRoleIn(CamelModel):
    id: int
    role: Role


class AddressIn(CamelModel):
    address: str = Field(min_length=1)


class MessageOut(BaseModel):
    message: str


class OkMessageOut(BaseModel):
    ok: bool
    message: str


# --- CATEGORY ---
class CategoryIn(CamelModel):
    name: str = Field(min_length=3)


class CategoryOut(CamelModel):
    id: int
    name: str
    created_at: datetime
    updated_at: datetime


# --- PRODUCT ---
class ImageIn(BaseModel):
    # provider metadata keeps the provider's own key names
    asset_id: str
    public_id: str
    url: str
    secure_url: str


class ImageOut(ImageIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int


class ProductIn(CamelModel):
    title: str = Field(min_length=1)
    description: str = ""
    price: float = Field(ge=0)
    quantity: int = Field(ge=0)
    category_id: Optional[int] = None
    images: List[ImageIn] = []


class ProductSummary(CamelModel):
    id: int
    title: str
    description: str
    price: float
    quantity: int
    sold: int
    category_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ProductOut(ProductSummary):
    category: Optional[CategoryOut] = None
    images: List[ImageOut] = []


class ProductSortIn(CamelModel):
    sort: Literal["createdAt", "updatedAt", "title", "price", "quantity", "sold"] = "createdAt"
    order: Literal["asc", "desc"] = "desc"
    limit: int = Field(default=10, ge=1)


class SearchFiltersIn(CamelModel):
    query: Optional[str] = None
    category: Optional[List[int]] = None
    price: Optional[List[float]] = None

    @field_validator("price")
    @classmethod
    def price_range(cls, value: Optional[List[float]]) -> Optional[List[float]]:
        if value is None:
            return value
        if len(value) != 2:
            raise PydanticCustomError("price_range", "Price range must be [min, max]")
        if value[0] > value[1]:
            raise PydanticCustomError("price_range", "Minimum price must not exceed maximum price")
        return value


class ImageUploadIn(BaseModel):
    image: str = Field(min_length=1)


class ImageRemoveIn(BaseModel):
    public_id: str = Field(min_length=1)


# --- CART ---
class CartLineIn(CamelModel):
    id: int
    count: int = Field(gt=0)
    price: float = Field(ge=0)


class CartIn(CamelModel):
    cart: List[CartLineIn] = []


class CartLineOut(CamelModel):
    id: int
    cart_id: int
    product_id: int
    count: int
    price: float
    product: ProductSummary


class CartOut(CamelModel):
    products: List[CartLineOut]
    cart_total: float


class EmptyCartOut(CamelModel):
    message: str
    deleted_count: int


# --- ORDER ---
class PaymentIntent(CamelModel):
    id: str = Field(min_length=1)
    amount: float = Field(ge=0)
    status: str
    currency: str


class OrderIn(CamelModel):
    payment_intent: PaymentIntent


class OrderLineOut(CamelModel):
    id: int
    order_id: int
    product_id: Optional[int] = None
    count: int
    price: float
    product: Optional[ProductSummary] = None


class OrderOut(CamelModel):
    id: int
    cart_total: float
    order_status: str
    stripe_payment_id: str
    amount: float
    status: str
    currency: str
    ordered_by_id: int
    created_at: datetime
    updated_at: datetime
    products: List[OrderLineOut] = Field(validation_alias="items", serialization_alias="products")


class AdminOrderOut(OrderOut):
    ordered_by: UserBrief


class OrderPlacedOut(BaseModel):
    ok: bool
    order: OrderOut


class OrdersOut(BaseModel):
    ok: bool
    orders: List[OrderOut]


class OrderStatusIn(CamelModel):
    order_id: int
    order_status: str = Field(min_length=1)
