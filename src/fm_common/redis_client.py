"""Redis connection for the outbound notification hand-off.

Load and offer state never lives here; PostgreSQL is the source of truth.
Redis being down only delays push notifications, so startup logs a warning
instead of refusing to boot.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings

logger = logging.getLogger(__name__)

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Get or create the shared client (lazy, one pool per process)."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            health_check_interval=30,
        )
    return _redis_pool


async def check_redis() -> bool:
    """PING the notification Redis; False (with a warning) when unreachable."""
    try:
        redis = await get_redis()
        return bool(await redis.ping())
    except (RedisError, OSError) as exc:
        logger.warning("Redis unavailable at %s: %s", settings.REDIS_URL, exc)
        return False


async def close_redis() -> None:
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
