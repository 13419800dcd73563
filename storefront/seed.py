"""Seed the database with an admin, a few shoppers and sample categories.

Run with ``python -m storefront.seed``; existing rows are left alone.
"""
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from . import auth, models
from .config import settings
from .database import get_engine, get_sessionmaker, init_models

logger = logging.getLogger(__name__)

USERS = [
    {"email": "admin@storefront.dev", "name": "admin", "role": "ADMIN", "address": "123 Maple Street, Springfield"},
    {"email": "john.doe@example.com", "name": "John Doe", "role": "USER", "address": "123 Maple Street, Springfield"},
    {"email": "jane.smith@example.com", "name": "Jane Smith", "role": "USER", "address": "456 Oak Avenue, Riverdale"},
    {"email": "alice.wong@example.com", "name": "Alice Wong", "role": "USER", "address": "789 Pine Road, Metropolis"},
    {"email": "bob.jones@example.com", "name": "Bob Jones", "role": "USER", "address": "101 Elm Street, Gotham"},
]

CATEGORIES = [
    "Sweet", "Cake", "Cookie", "Pudding", "Jelly",
    "Donut", "Chocolate", "Mochi", "Thai Dessert", "Ice Cream",
]


async def seed(db: AsyncSession, password: str) -> dict:
    hashed = auth.get_password_hash(password)
    created = {"users": 0, "categories": 0}

    existing = set((await db.execute(select(models.User.email))).scalars().all())
    for data in USERS:
        if data["email"] in existing:
            continue
        db.add(models.User(password=hashed, **data))
        created["users"] += 1

    existing = set((await db.execute(select(models.Category.name))).scalars().all())
    for name in CATEGORIES:
        if name in existing:
            continue
        db.add(models.Category(name=name))
        created["categories"] += 1

    await db.commit()
    return created


async def main() -> None:
    await init_models()
    async with get_sessionmaker()() as db:
        created = await seed(db, settings.SEED_USER_PASSWORD)
    logger.info("Seeded %(users)d user(s) and %(categories)d category(ies)", created)
    await get_engine().dispose()


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    asyncio.run(main())
