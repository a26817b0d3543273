import json
import logging
from typing import Any, Dict, List

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .redis import RedisCrudService

logger = logging.getLogger(__name__)

HUB_KEY_PREFIX = "hub:"


class PublicationStoreError(Exception):
    """The publication documents for a hub could not be read."""


class PublicationRepository:
    """Read-only access to a hub's name and publication documents.

    Publications are stored as one JSON array per hub, in the same document
    shape the marketplace's admin side writes (basicInfo, distributionChannels,
    audienceDemographics, crossChannelPackages).
    """

    def __init__(self, redis_crud: RedisCrudService) -> None:
        self._redis = redis_crud

    async def get_hub_name(self, hub_id: str) -> str | None:
        return await self._redis.get(f"{HUB_KEY_PREFIX}{hub_id}:name")

    async def get_hub_publications(self, hub_id: str) -> List[Dict[str, Any]]:
        # a missing key is an empty hub; a failed read is an error
        client = self._redis.client
        if client is None:
            raise PublicationStoreError("publication store is not connected")
        try:
            raw = await client.get(f"{HUB_KEY_PREFIX}{hub_id}:publications")
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Reading publications for hub %s failed: %s", hub_id, e)
            raise PublicationStoreError(f"publication store unavailable: {e}") from e
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PublicationStoreError(f"invalid publication data for hub {hub_id}: {e}") from e
        if not isinstance(data, list):
            raise PublicationStoreError(f"publication data for hub {hub_id} is not a list")
        return [p for p in data if isinstance(p, dict)]
