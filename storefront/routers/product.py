import logging
from typing import List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from .. import auth, cache, catalog, schemas
from ..assets import AssetStore, get_asset_store
from ..config import settings
from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Products"])


@router.post(
    "/product",
    response_model=schemas.ProductOut,
    dependencies=[Depends(auth.require_catalog_writer)],
)
async def create_product(product: schemas.ProductIn, db: AsyncSession = Depends(get_db)):
    new_product = await catalog.create_product(db, product)
    await cache.invalidate_products()
    return new_product


@router.get("/products/{page}/{limit}", response_model=List[schemas.ProductOut])
async def product_list(
    page: int = Path(ge=1),
    limit: int = Path(ge=1),
    db: AsyncSession = Depends(get_db),
):
    key = cache.products_key(page, limit)
    cached = await cache.get_json(key)
    if cached is not None:
        return cached

    products = await catalog.list_products(db, page, limit)
    payload = [schemas.ProductOut.model_validate(p).model_dump(by_alias=True) for p in products]
    await cache.set_json(key, payload, ex=settings.PRODUCTS_CACHE_TTL)
    return payload


@router.get("/product/{product_id}", response_model=schemas.ProductOut)
async def read_product(product_id: int, db: AsyncSession = Depends(get_db)):
    return await catalog.get_product(db, product_id)


@router.put(
    "/product/{product_id}",
    response_model=schemas.ProductOut,
    dependencies=[Depends(auth.require_catalog_writer)],
)
async def update_product(product_id: int, product: schemas.ProductIn, db: AsyncSession = Depends(get_db)):
    updated = await catalog.update_product(db, product_id, product)
    await cache.invalidate_products()
    return updated


@router.delete(
    "/product/{product_id}",
    response_model=schemas.MessageOut,
    dependencies=[Depends(auth.require_catalog_writer)],
)
async def remove_product(product_id: int, db: AsyncSession = Depends(get_db)):
    await catalog.remove_product(db, product_id)
    await cache.invalidate_products()
    return {"message": "Remove product successfully"}


@router.post("/product-by", response_model=List[schemas.ProductOut])
async def list_product_by(params: schemas.ProductSortIn, db: AsyncSession = Depends(get_db)):
    return await catalog.list_products_by(db, params.sort, params.order, params.limit)


@router.post("/search/filters", response_model=List[schemas.ProductOut])
async def search_filters(filters: schemas.SearchFiltersIn, db: AsyncSession = Depends(get_db)):
    return await catalog.search_products(db, filters)


@router.post("/images", dependencies=[Depends(auth.require_admin)])
async def add_images(
    payload: schemas.ImageUploadIn,
    store: AssetStore = Depends(get_asset_store),
):
    return await store.upload(payload.image)


@router.post(
    "/remove-image",
    response_model=schemas.MessageOut,
    dependencies=[Depends(auth.require_admin)],
)
async def remove_images(
    payload: schemas.ImageRemoveIn,
    store: AssetStore = Depends(get_asset_store),
):
    result = await store.destroy(payload.public_id)
    logger.debug("Destroy result for %s: %s", payload.public_id, result)
    return {"message": "Remove Image Successfully"}
