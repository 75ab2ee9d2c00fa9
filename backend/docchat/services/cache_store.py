"""Redis-backed cache store that degrades to cache misses."""
from typing import Dict, List, Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError, RedisError

from docchat.utils.logger import logger
from docchat.utils.metrics import CACHE_ERRORS


class CacheStore:
    """
    Thin async wrapper over a Redis client.

    Every operation is best effort: connection or protocol failures are logged,
    counted, and reported as a miss (or a failed write) instead of raised. After a
    connection failure the store stops talking to Redis until it is recreated.
    """

    def __init__(self, client: Optional[redis.Redis] = None, enable_cache: bool = True):
        """
        Initialize cache store.

        Args:
            client: Redis client to use; None runs with the cache disabled
            enable_cache: Enable/disable the cache entirely
        """
        self.redis_client = client
        self.enable_cache = enable_cache
        self._cache_available = client is not None

    @classmethod
    def from_url(cls, redis_url: str, enable_cache: bool = True) -> "CacheStore":
        """Create a store connected to the Redis server at redis_url."""
        if not enable_cache:
            logger.info("Redis cache disabled by configuration")
            return cls(client=None, enable_cache=False)

        try:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            logger.info(f"Redis cache initialized: {redis_url}")
            return cls(client=client, enable_cache=True)
        except Exception as e:
            logger.warning(f"Redis cache unavailable: {str(e)}. Continuing without cache.")
            return cls(client=None, enable_cache=True)

    @property
    def available(self) -> bool:
        return self.enable_cache and self._cache_available and self.redis_client is not None

    def _handle_error(self, operation: str, error: Exception) -> None:
        CACHE_ERRORS.labels(operation=operation).inc()
        if isinstance(error, ConnectionError):
            logger.warning(f"Redis connection lost during {operation}: {str(error)}")
            self._cache_available = False
        else:
            logger.warning(f"Redis cache error during {operation}: {str(error)}")

    async def get(self, key: str) -> Optional[str]:
        if not self.available:
            return None
        try:
            return await self.redis_client.get(key)
        except RedisError as e:
            self._handle_error("get", e)
            return None

    async def set(self, key: str, value: str, ttl: int) -> bool:
        if not self.available:
            return False
        try:
            await self.redis_client.setex(key, ttl, value)
            return True
        except RedisError as e:
            self._handle_error("set", e)
            return False

    async def hset(self, key: str, mapping: Dict[str, str], ttl: int) -> bool:
        """Write a hash and (re)start its TTL."""
        if not self.available:
            return False
        try:
            async with self.redis_client.pipeline(transaction=True) as pipe:
                pipe.hset(key, mapping=mapping)
                pipe.expire(key, ttl)
                await pipe.execute()
            return True
        except RedisError as e:
            self._handle_error("hset", e)
            return False

    async def hgetall(self, key: str) -> Dict[str, str]:
        if not self.available:
            return {}
        try:
            return await self.redis_client.hgetall(key)
        except RedisError as e:
            self._handle_error("hgetall", e)
            return {}

    async def keys(self, pattern: str) -> List[str]:
        """Enumerate keys matching a glob pattern using SCAN."""
        if not self.available:
            return []
        try:
            return [key async for key in self.redis_client.scan_iter(match=pattern, count=500)]
        except RedisError as e:
            self._handle_error("scan", e)
            return []

    async def delete(self, *keys: str) -> int:
        if not keys or not self.available:
            return 0
        try:
            return await self.redis_client.delete(*keys)
        except RedisError as e:
            self._handle_error("delete", e)
            return 0

    async def delete_matching(self, pattern: str) -> int:
        return await self.delete(*await self.keys(pattern))

    async def push_capped(
        self, key: str, values: List[str], max_length: int, ttl: int, create: bool = True
    ) -> bool:
        """
        LPUSH values, keep the newest max_length entries and refresh the TTL.

        With ``create=False`` the push is an LPUSHX: a missing list stays missing.
        """
        if not values or not self.available:
            return False
        try:
            async with self.redis_client.pipeline(transaction=True) as pipe:
                if create:
                    pipe.lpush(key, *values)
                else:
                    pipe.lpushx(key, *values)
                pipe.ltrim(key, 0, max_length - 1)
                pipe.expire(key, ttl)
                await pipe.execute()
            return True
        except RedisError as e:
            self._handle_error("push", e)
            return False

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        if not self.available:
            return []
        try:
            return await self.redis_client.lrange(key, start, end)
        except RedisError as e:
            self._handle_error("lrange", e)
            return []

    async def close(self):
        """Close Redis connection."""
        if self.redis_client:
            try:
                await self.redis_client.aclose()
                logger.info("Redis cache connection closed")
            except RedisError as e:
                logger.warning(f"Error closing Redis connection: {str(e)}")
