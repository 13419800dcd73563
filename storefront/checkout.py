"""Cart building and checkout.

A user's cart is never edited in place: every save deletes the previous cart
and writes a fresh one whose line prices are the snapshot the client sent.
Checkout copies the cart into an order, moves stock from ``quantity`` to
``sold`` and deletes the cart, all in one transaction.
"""
import logging
from typing import Dict, Iterable, List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from . import models, schemas
from .errors import EmptyCart, InvalidInput, NotFound, OutOfStock

logger = logging.getLogger(__name__)


def cart_total(lines: Iterable) -> float:
    return sum(line.price * line.count for line in lines)


def _counts_by_product(lines: Iterable) -> Dict[int, int]:
    counts: Dict[int, int] = {}
    for line in lines:
        counts[line.product_id] = counts.get(line.product_id, 0) + line.count
    return counts


async def _delete_cart(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(models.Cart)
        .where(models.Cart.ordered_by_id == user_id)
        .options(selectinload(models.Cart.items))
        .execution_options(populate_existing=True)
    )
    carts = result.scalars().all()
    for cart in carts:
        # line items go with the cart
        await db.delete(cart)
    await db.flush()
    return len(carts)


async def build_cart(db: AsyncSession, user_id: int, lines: List[schemas.CartLineIn]) -> models.Cart:
    if not lines:
        raise InvalidInput("Invalid cart")

    user = await db.get(models.User, user_id)
    if user is None:
        raise NotFound("User not found")

    # check if anything sold out before touching the old cart
    requested: Dict[int, int] = {}
    for line in lines:
        requested[line.id] = requested.get(line.id, 0) + line.count
    for product_id, count in requested.items():
        product = await db.get(models.Product, product_id, populate_existing=True)
        if product is None or count > product.quantity:
            title = product.title if product is not None else "product"
            raise OutOfStock(f"Sorry, {title} out of stock")

    items = [
        models.ProductOnCart(product_id=line.id, count=line.count, price=line.price)
        for line in lines
    ]
    try:
        await _delete_cart(db, user_id)
        cart = models.Cart(ordered_by_id=user_id, cart_total=cart_total(items), items=items)
        db.add(cart)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Saved cart for user %s: %d line(s), total %.2f", user_id, len(items), cart.cart_total)
    return cart


async def get_cart(db: AsyncSession, user_id: int) -> models.Cart:
    stmt = (
        select(models.Cart)
        .where(models.Cart.ordered_by_id == user_id)
        .options(selectinload(models.Cart.items).selectinload(models.ProductOnCart.product))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    cart = result.scalar_one_or_none()
    if cart is None:
        raise NotFound("Cart not found")
    return cart


async def empty_cart(db: AsyncSession, user_id: int) -> int:
    """Delete the user's cart; returns how many carts were removed (0 or 1)."""
    try:
        deleted = await _delete_cart(db, user_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Emptied cart for user %s (deleted %d)", user_id, deleted)
    return deleted


def _order_query():
    return select(models.Order).options(
        selectinload(models.Order.items).selectinload(models.ProductOnOrder.product)
    )


async def place_order(db: AsyncSession, user_id: int, payment: schemas.PaymentIntent) -> models.Order:
    stmt = (
        select(models.Cart)
        .where(models.Cart.ordered_by_id == user_id)
        .options(selectinload(models.Cart.items))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    cart = result.scalar_one_or_none()

    if not cart or not cart.items:
        raise EmptyCart("Cart is Empty")

    # amounts arrive in the currency's smallest unit
    amount = float(payment.amount) / 100

    try:
        order = models.Order(
            ordered_by_id=user_id,
            cart_total=cart.cart_total,
            stripe_payment_id=payment.id,
            amount=amount,
            status=payment.status,
            currency=payment.currency,
            items=[
                models.ProductOnOrder(product_id=line.product_id, count=line.count, price=line.price)
                for line in cart.items
            ],
        )
        db.add(order)
        await db.flush()

        for product_id, count in _counts_by_product(cart.items).items():
            # decrement only while stock still covers the count
            stmt = (
                update(models.Product)
                .where(models.Product.id == product_id)
                .where(models.Product.quantity >= count)
                .values(
                    quantity=models.Product.quantity - count,
                    sold=models.Product.sold + count,
                )
                .execution_options(synchronize_session=False)
            )
            update_result = await db.execute(stmt)
            if update_result.rowcount == 0:
                product = await db.get(models.Product, product_id)
                title = product.title if product is not None else "product"
                raise OutOfStock(f"Sorry, {title} out of stock")

        await _delete_cart(db, user_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Placed order %s for user %s (payment %s)", order.id, user_id, payment.id)
    result = await db.execute(
        _order_query()
        .where(models.Order.id == order.id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def list_orders(db: AsyncSession, user_id: int) -> List[models.Order]:
    result = await db.execute(
        _order_query()
        .where(models.Order.ordered_by_id == user_id)
        .order_by(models.Order.created_at.desc(), models.Order.id.desc())
    )
    return list(result.scalars().all())
