import logging

import redis
from fastapi import Request

from .cache import get_cache
from .config import settings
from .errors import TooManyRequests

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window request cap per client IP, counted in Redis."""

    def __init__(self, scope: str, times: int, seconds: int):
        self.scope = scope
        self.times = times
        self.seconds = seconds

    def key_for(self, request: Request) -> str:
        client = request.client.host if request.client else "unknown"
        return f"ratelimit:{self.scope}:{client}"

    async def __call__(self, request: Request) -> None:
        key = self.key_for(request)
        try:
            # open the window and count the hit in one round trip
            pipe = get_cache().pipeline(transaction=True)
            pipe.set(key, 0, ex=self.seconds, nx=True)
            pipe.incr(key)
            _, hits = await pipe.execute()
        except redis.RedisError as exc:
            logger.warning("Rate limiter unavailable, letting request through: %s", exc)
            return
        if hits > self.times:
            logger.info("Rate limit hit for %s", key)
            raise TooManyRequests("Too many attempts, Please try again later.")


auth_limit = RateLimiter(
    "auth",
    times=settings.AUTH_RATE_LIMIT_TIMES,
    seconds=settings.AUTH_RATE_LIMIT_SECONDS,
)
