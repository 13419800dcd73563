import logging
from typing import List, Optional

from sqlalchemy import and_, asc, desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from . import models, schemas
from .errors import Conflict, NotFound

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdAt": models.Product.created_at,
    "updatedAt": models.Product.updated_at,
    "title": models.Product.title,
    "price": models.Product.price,
    "quantity": models.Product.quantity,
    "sold": models.Product.sold,
}


def _with_relations(query):
    return query.options(
        selectinload(models.Product.category),
        selectinload(models.Product.images),
    )


# --- CATEGORY ---
async def create_category(db: AsyncSession, name: str) -> models.Category:
    result = await db.execute(select(models.Category).where(models.Category.name == name))
    if result.scalar_one_or_none():
        raise Conflict("Duplicated category name")
    category = models.Category(name=name)
    db.add(category)
    await db.commit()
    await db.refresh(category)
    logger.info("Created category %s (%s)", category.id, category.name)
    return category


async def list_categories(db: AsyncSession) -> List[models.Category]:
    result = await db.execute(select(models.Category).order_by(models.Category.id))
    return list(result.scalars().all())


async def remove_category(db: AsyncSession, category_id: int) -> models.Category:
    category = await db.get(models.Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    await db.delete(category)
    await db.commit()
    logger.info("Removed category %s", category_id)
    return category


# --- PRODUCT ---
def _image_rows(images: List[schemas.ImageIn]) -> List[models.ProductImage]:
    return [models.ProductImage(**image.model_dump()) for image in images]


async def get_product(db: AsyncSession, product_id: int) -> models.Product:
    query = _with_relations(select(models.Product).where(models.Product.id == product_id))
    result = await db.execute(query.execution_options(populate_existing=True))
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFound("Product not found")
    return product


async def create_product(db: AsyncSession, data: schemas.ProductIn) -> models.Product:
    product = models.Product(
        title=data.title,
        description=data.description,
        price=float(data.price),
        quantity=int(data.quantity),
        category_id=data.category_id,
        images=_image_rows(data.images),
    )
    db.add(product)
    await db.commit()
    logger.info("Created product %s with %d image(s)", product.id, len(data.images))
    return await get_product(db, product.id)


async def update_product(db: AsyncSession, product_id: int, data: schemas.ProductIn) -> models.Product:
    product = await get_product(db, product_id)
    product.title = data.title
    product.description = data.description
    product.price = float(data.price)
    product.quantity = int(data.quantity)
    product.category_id = data.category_id
    # images are appended, existing ones are kept
    product.images.extend(_image_rows(data.images))
    await db.commit()
    return await get_product(db, product_id)


async def remove_product(db: AsyncSession, product_id: int) -> None:
    product = await db.get(models.Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    await db.delete(product)
    await db.commit()
    logger.info("Removed product %s", product_id)


async def list_products(db: AsyncSession, page: int, limit: int) -> List[models.Product]:
    skip = limit * (page - 1)
    query = (
        _with_relations(select(models.Product))
        .order_by(models.Product.created_at.desc(), models.Product.id.desc())
        .offset(skip)
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_products_by(db: AsyncSession, sort: str, order: str, limit: int) -> List[models.Product]:
    column = SORT_COLUMNS[sort]
    direction = asc if order == "asc" else desc
    query = _with_relations(select(models.Product)).order_by(direction(column), direction(models.Product.id)).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


def search_conditions(
    query: Optional[str] = None,
    category: Optional[List[int]] = None,
    price: Optional[List[float]] = None,
) -> list:
    conditions = []
    if query:
        conditions.append(models.Product.title.contains(query, autoescape=True))
    if category:
        conditions.append(models.Product.category_id.in_(category))
    if price:
        conditions.append(models.Product.price.between(float(price[0]), float(price[1])))
    return conditions


async def search_products(db: AsyncSession, filters: schemas.SearchFiltersIn) -> List[models.Product]:
    """Products matching every supplied filter; no filter matches everything."""
    conditions = search_conditions(filters.query, filters.category, filters.price)
    query = _with_relations(select(models.Product))
    if conditions:
        query = query.where(and_(*conditions))
    result = await db.execute(query.order_by(models.Product.id))
    return list(result.scalars().all())
