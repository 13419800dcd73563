import logging
from typing import List

from fastapi import APIRouter, Depends
from kombu.exceptions import OperationalError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .. import auth, cache, checkout, models, schemas
from ..database import get_db
from ..errors import InvalidInput, NotFound
from ..worker import send_order_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


# --- USER ADMIN ---
@router.get("/users", response_model=List[schemas.UserAdminOut])
async def list_users(
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.require_admin),
):
    result = await db.execute(select(models.User).order_by(models.User.id))
    return result.scalars().all()


@router.post("/change-status", response_model=schemas.MessageOut)
async def change_user_status(
    payload: schemas.ChangeStatusIn,
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.require_admin),
):
    user = await db.get(models.User, payload.id)
    if not user:
        raise NotFound("User not found")
    user.enabled = payload.enabled
    await db.commit()
    logger.info("User %s enabled=%s (by %s)", user.id, user.enabled, current_user.email)
    return {"message": "Update Status Success"}


@router.post("/change-role", response_model=schemas.MessageOut)
async def change_user_role(
    payload: schemas.ChangeRoleIn,
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.require_admin),
):
    user = await db.get(models.User, payload.id)
    if not user:
        raise NotFound("User not found")
    user.role = payload.role.value
    await db.commit()
    logger.info("User %s role=%s (by %s)", user.id, user.role, current_user.email)
    return {"message": "Update Role Success"}


# --- CART ---
@router.post("/user/cart", response_model=schemas.MessageOut)
async def create_user_cart(
    payload: schemas.CartIn,
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    await checkout.build_cart(db, current_user.id, payload.cart)
    return {"message": "Add Cart done"}


@router.get("/user/cart", response_model=schemas.CartOut)
async def get_user_cart(
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    cart = await checkout.get_cart(db, current_user.id)
    return {"products": cart.items, "cart_total": cart.cart_total}


@router.delete("/user/cart", response_model=schemas.EmptyCartOut)
async def empty_cart(
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    deleted = await checkout.empty_cart(db, current_user.id)
    return {"message": "Cart Empty Success", "deleted_count": deleted}


@router.post("/user/address", response_model=schemas.OkMessageOut)
async def save_address(
    payload: schemas.AddressIn,
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    user = await db.get(models.User, current_user.id)
    user.address = payload.address
    await db.commit()
    return {"ok": True, "message": "Address update success"}


# --- ORDER ---
@router.post("/user/order", response_model=schemas.OrderPlacedOut)
async def save_order(
    payload: schemas.OrderIn,
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    order = await checkout.place_order(db, current_user.id, payload.payment_intent)

    # stock changed, cached listings are stale
    await cache.invalidate_products()
    try:
        send_order_email.delay(current_user.email, order.id)
    except OperationalError as exc:
        logger.warning("Could not enqueue order email for order %s: %s", order.id, exc)
    return {"ok": True, "order": order}


@router.get("/user/order", response_model=schemas.OrdersOut)
async def get_orders(
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    orders = await checkout.list_orders(db, current_user.id)
    if not orders:
        raise InvalidInput("Order not found")
    return {"ok": True, "orders": orders}
