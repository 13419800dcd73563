import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class User(TimestampMixin, Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    role = Column(String, default=Role.USER.value, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    address = Column(Text, nullable=True)

    # User has at most one live cart
    cart = relationship("Cart", back_populates="ordered_by", uselist=False, passive_deletes=True)
    orders = relationship("Order", back_populates="ordered_by", passive_deletes=True)


class Category(TimestampMixin, Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)

    products = relationship("Product", back_populates="category", passive_deletes=True)


class Product(TimestampMixin, Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False)
    sold = Column(Integer, default=0, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)

    category = relationship("Category", back_populates="products")
    images = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProductImage.id",
    )


class ProductImage(TimestampMixin, Base):
    __tablename__ = "images"
    id = Column(Integer, primary_key=True, index=True)
    asset_id = Column(String, nullable=False)
    public_id = Column(String, nullable=False)
    url = Column(String, nullable=False)
    secure_url = Column(String, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    product = relationship("Product", back_populates="images")


class Cart(TimestampMixin, Base):
    __tablename__ = "carts"
    id = Column(Integer, primary_key=True, index=True)
    cart_total = Column(Float, nullable=False)
    ordered_by_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    ordered_by = relationship("User", back_populates="cart")
    items = relationship(
        "ProductOnCart",
        back_populates="cart",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProductOnCart.id",
    )


class ProductOnCart(Base):
    __tablename__ = "product_on_cart"
    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    count = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")


class Order(TimestampMixin, Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True, index=True)
    cart_total = Column(Float, nullable=False)
    order_status = Column(String, default="Not Process", nullable=False)
    stripe_payment_id = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    status = Column(String, nullable=False)
    currency = Column(String, nullable=False)
    ordered_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    ordered_by = relationship("User", back_populates="orders")
    items = relationship(
        "ProductOnOrder",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ProductOnOrder.id",
    )


class ProductOnOrder(Base):
    __tablename__ = "product_on_order"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    count = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
