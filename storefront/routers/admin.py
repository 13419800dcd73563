import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .. import auth, models, schemas
from ..database import get_db
from ..errors import NotFound

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(auth.require_admin)])


def _admin_order_query():
    return select(models.Order).options(
        selectinload(models.Order.items).selectinload(models.ProductOnOrder.product),
        selectinload(models.Order.ordered_by),
    )


@router.put("/order-status", response_model=schemas.AdminOrderOut)
async def change_order_status(payload: schemas.OrderStatusIn, db: AsyncSession = Depends(get_db)):
    order = await db.get(models.Order, payload.order_id)
    if not order:
        raise NotFound("Order not found")

    # any status string is accepted
    order.order_status = payload.order_status
    await db.commit()
    logger.info("Order %s status -> %s", order.id, order.order_status)

    result = await db.execute(
        _admin_order_query()
        .where(models.Order.id == order.id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@router.get("/order", response_model=List[schemas.AdminOrderOut])
async def get_order_admin(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        _admin_order_query().order_by(models.Order.created_at.desc(), models.Order.id.desc())
    )
    return result.scalars().all()
