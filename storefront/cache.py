import json
import logging
from typing import Any, Optional

import redis
import redis.asyncio as aioredis
from fastapi.encoders import jsonable_encoder

from .config import settings

logger = logging.getLogger(__name__)

PRODUCTS_KEY_PREFIX = "products_list"

_client: Optional[aioredis.Redis] = None


def get_cache() -> aioredis.Redis:
    global _client
    if _client is None:
        _client = aioredis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


def products_key(page: int, limit: int) -> str:
    return f"{PRODUCTS_KEY_PREFIX}:{page}:{limit}"


async def get_json(key: str) -> Optional[Any]:
    try:
        cached = await get_cache().get(key)
    except redis.RedisError as exc:
        logger.warning("Cache read failed for %s: %s", key, exc)
        return None
    if cached is None:
        return None
    return json.loads(cached)


async def set_json(key: str, value: Any, ex: int) -> None:
    try:
        await get_cache().set(key, json.dumps(jsonable_encoder(value)), ex=ex)
    except redis.RedisError as exc:
        logger.warning("Cache write failed for %s: %s", key, exc)


async def invalidate_products() -> None:
    try:
        client = get_cache()
        keys = [key async for key in client.scan_iter(match=f"{PRODUCTS_KEY_PREFIX}:*")]
        if keys:
            await client.delete(*keys)
    except redis.RedisError as exc:
        logger.warning("Cache invalidation failed: %s", exc)
