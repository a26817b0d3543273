import logging
from typing import Dict, List, Mapping

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..settings import get_settings

logger = logging.getLogger(__name__)


class RedisCrudService:
    """Async key, hash and list operations against a Redis instance.

    Read helpers return None on failure and write helpers return False, so
    callers decide whether a storage hiccup is fatal for them.
    """

    def __init__(self, url: str) -> None:
        """Create a Redis client for the given URL (e.g. redis://localhost:6379/0)."""
        self._url = url
        self._client: Redis | None = None

    async def connect(self) -> None:
        """Establish connection to Redis. Idempotent."""
        if self._client is not None:
            return
        self._client = Redis.from_url(
            self._url,
            decode_responses=True,
        )
        try:
            await self._client.ping()
            logger.info("Redis connection established: %s", self._url.split("@")[-1])
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis ping failed: %s", e)
            await self._client.aclose()
            self._client = None
            raise

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("Redis connection closed")

    @property
    def client(self) -> Redis | None:
        """Return the underlying Redis client, or None if not connected."""
        return self._client

    async def get(self, key: str) -> str | None:
        """Return the value for key, or None if missing or on error."""
        if self._client is None:
            return None
        try:
            value = await self._client.get(key)
            return value if value is None else str(value)
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis get %s failed: %s", key, e)
            return None

    async def hgetall(self, key: str) -> Dict[str, str] | None:
        """Return every field of the hash at key ({} when missing), or None on error."""
        if self._client is None:
            return None
        try:
            return dict(await self._client.hgetall(key))
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis hgetall %s failed: %s", key, e)
            return None

    async def hset_many(
        self,
        key: str,
        mapping: Mapping[str, str],
        ttl_seconds: int | None = None,
    ) -> bool:
        """Upsert the given fields into the hash at key; other fields are untouched."""
        if self._client is None:
            return False
        if not mapping:
            return True
        try:
            await self._client.hset(key, mapping=dict(mapping))
            if ttl_seconds is not None and ttl_seconds > 0:
                await self._client.expire(key, ttl_seconds)
            return True
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis hset %s failed: %s", key, e)
            return False

    async def rpush(self, key: str, value: str, ttl_seconds: int | None = None) -> bool:
        """Append value to the list at key. Returns True on success."""
        if self._client is None:
            return False
        try:
            await self._client.rpush(key, value)
            if ttl_seconds is not None and ttl_seconds > 0:
                await self._client.expire(key, ttl_seconds)
            return True
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis rpush %s failed: %s", key, e)
            return False

    async def lrange(self, key: str) -> List[str] | None:
        """Return the whole list at key ([] when missing), or None on error."""
        if self._client is None:
            return None
        try:
            return [str(v) for v in await self._client.lrange(key, 0, -1)]
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis lrange %s failed: %s", key, e)
            return None

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if key was deleted or did not exist."""
        if self._client is None:
            return False
        try:
            await self._client.delete(key)
            return True
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis delete %s failed: %s", key, e)
            return False


def get_redis_crud_service() -> RedisCrudService | None:
    """Return a Redis CRUD service if redis_url is configured, else None."""
    settings = get_settings()
    if not settings.redis_url or not settings.redis_url.strip():
        return None
    return RedisCrudService(settings.redis_url.strip())
