# app/core/cache.py
import orjson
from redis import asyncio as aioredis
from redis.asyncio.connection import ConnectionPool
from redis.asyncio.client import Redis
from app.core.config import settings
import logging
from typing import Any, Optional, Union

# Set up logging
logger = logging.getLogger(__name__)

# Global Redis connection pool and client
redis_pool: Optional[ConnectionPool] = None
redis_client: Optional[Union[Redis, "DummyRedis"]] = None

CACHE_PREFIX = "appointments"


async def init_redis_pool() -> Union[Redis, "DummyRedis"]:
    """Initialize Redis connection pool, falling back to a no-op client"""
    global redis_pool, redis_client

    if redis_client is not None:
        return redis_client

    if not settings.ENABLE_REDIS_CACHE:
        logger.info("Redis cache disabled by configuration")
        redis_client = DummyRedis()
        return redis_client

    try:
        redis_pool = aioredis.ConnectionPool.from_url(
            settings.REDIS_CONNECTION_STRING,
            max_connections=20,
            decode_responses=True,  # Auto-decode to strings
            encoding="utf-8",
            retry_on_timeout=True,
            socket_timeout=2.0,
            socket_connect_timeout=2.0,
            health_check_interval=30
        )

        client = Redis(connection_pool=redis_pool)

        # Test connection
        await client.ping()
        logger.info("Redis connection established successfully")

        redis_client = client
        return redis_client
    except Exception as e:
        logger.error(f"Failed to initialize Redis connection: {str(e)}")
        # The app still works without Redis, reads simply go to the database
        redis_client = DummyRedis()
        return redis_client


async def close_redis_pool() -> None:
    """Close the Redis client and pool"""
    global redis_pool, redis_client

    if redis_client is not None and not isinstance(redis_client, DummyRedis):
        try:
            await redis_client.aclose()
        except Exception as e:
            logger.warning(f"Error closing Redis client: {str(e)}")

    redis_pool = None
    redis_client = None


async def get_redis() -> Union[Redis, "DummyRedis"]:
    """Get Redis client instance"""
    if redis_client is None:
        return await init_redis_pool()
    return redis_client


async def set_cache(key: str, value: Any, expire: int = None) -> bool:
    """Set a cache value serialized with orjson"""
    redis = await get_redis()
    if isinstance(redis, DummyRedis):
        return False

    try:
        cache_key = f"{CACHE_PREFIX}:{key}"

        if expire is None:
            expire = settings.REDIS_TTL

        json_value = orjson.dumps(value).decode('utf-8')
        result = await redis.set(cache_key, json_value, ex=expire)

        if result:
            logger.debug(f"Cached key: {key} with TTL: {expire}s")
            return True
        return False
    except Exception as e:
        logger.error(f"Error setting cache: {str(e)}")
        return False


async def get_cache(key: str) -> Optional[Any]:
    """Get a cached value by key"""
    redis = await get_redis()
    if isinstance(redis, DummyRedis):
        return None

    try:
        data = await redis.get(f"{CACHE_PREFIX}:{key}")

        if data:
            try:
                return orjson.loads(data)
            except orjson.JSONDecodeError as e:
                logger.error(f"Error decoding cached JSON for {key}: {str(e)}")
                return None
        return None
    except Exception as e:
        logger.error(f"Error getting cache: {str(e)}")
        return None


async def invalidate_cache(key_pattern: str) -> int:
    """Delete all cache keys matching a pattern and return count of deleted keys"""
    redis = await get_redis()
    if isinstance(redis, DummyRedis):
        return 0

    try:
        keys = await redis.keys(f"{CACHE_PREFIX}:{key_pattern}")

        if keys:
            deleted = await redis.delete(*keys)
            logger.info(f"Invalidated {deleted} cache keys matching: {key_pattern}")
            return deleted
        return 0
    except Exception as e:
        logger.error(f"Error invalidating cache: {str(e)}")
        return 0


class DummyRedis:
    """Dummy Redis client that does nothing - used when Redis is unavailable"""

    async def ping(self):
        return False

    async def set(self, *args, **kwargs):
        return False

    async def get(self, *args, **kwargs):
        return None

    async def keys(self, *args, **kwargs):
        return []

    async def delete(self, *args, **kwargs):
        return 0
