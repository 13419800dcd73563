from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .. import auth, cache, catalog, schemas
from ..database import get_db

router = APIRouter(tags=["Category"])


@router.post("/category", response_model=schemas.CategoryOut)
async def create_category(
    category: schemas.CategoryIn,
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.require_admin),
):
    return await catalog.create_category(db, category.name)


@router.get("/category", response_model=List[schemas.CategoryOut])
async def category_list(db: AsyncSession = Depends(get_db)):
    return await catalog.list_categories(db)


@router.delete(
    "/category/{category_id}",
    response_model=schemas.CategoryOut,
    dependencies=[Depends(auth.require_catalog_writer)],
)
async def remove_category(category_id: int, db: AsyncSession = Depends(get_db)):
    removed = await catalog.remove_category(db, category_id)
    # cached listings still embed the category
    await cache.invalidate_products()
    return removed
