import sys
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

_root = Path(__file__).resolve().parents[1]
_src = _root / "src"
if _src.exists() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from hubsales.models import ToolExecutionContext  # noqa: E402
from hubsales.services.conversation_store import ConversationStore  # noqa: E402
from hubsales.services.redis import RedisCrudService  # noqa: E402


class InMemoryRedis:
    """Dict-backed stand-in for the handful of redis.asyncio calls we make."""

    def __init__(self) -> None:
        self.strings: Dict[str, str] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.lists: Dict[str, List[str]] = {}
        self.ttls: Dict[str, int] = {}

    async def get(self, key: str) -> Any:
        return self.strings.get(key)

    async def hset(self, key: str, mapping: Dict[str, str]) -> int:
        self.hashes.setdefault(key, {}).update(mapping)
        return len(mapping)

    async def hgetall(self, key: str) -> Dict[str, str]:
        return dict(self.hashes.get(key, {}))

    async def rpush(self, key: str, value: str) -> int:
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        items = self.lists.get(key, [])
        return items[start:] if end == -1 else items[start : end + 1]

    async def expire(self, key: str, ttl: int) -> bool:
        self.ttls[key] = ttl
        return True

    async def delete(self, key: str) -> int:
        found = 0
        for bucket in (self.strings, self.hashes, self.lists):
            if bucket.pop(key, None) is not None:
                found = 1
        return found


@pytest.fixture
def memory_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def redis_crud(memory_redis: InMemoryRedis) -> RedisCrudService:
    """RedisCrudService wired to the in-memory client."""
    svc = RedisCrudService("redis://localhost:6379/0")
    svc._client = memory_redis  # type: ignore[assignment]
    return svc


@pytest.fixture
def store(redis_crud: RedisCrudService) -> ConversationStore:
    return ConversationStore(redis_crud=redis_crud)


@pytest.fixture
def tool_ctx() -> ToolExecutionContext:
    return ToolExecutionContext(hub_id="chicago", conversation_id="conv-1", user_id="user-1")


@pytest.fixture
def mock_storage() -> MagicMock:
    """Blob storage double with async put/get/delete."""
    m = MagicMock()
    m.put_bytes = AsyncMock(return_value=None)
    m.get_bytes = AsyncMock(return_value=b"")
    m.delete = AsyncMock(return_value=None)
    m.presigned_download_url = AsyncMock(return_value="https://files.example.com/signed")
    return m


@pytest.fixture
def publications_data() -> List[Dict[str, Any]]:
    return [
        {
            "publicationId": "1001",
            "basicInfo": {
                "publicationName": "Southside Weekly",
                "publicationType": "weekly",
                "description": "Community news for the South Side of Chicago.",
                "primaryServiceArea": "South Side, Chicago",
                "geographicCoverage": "local",
            },
            "distributionChannels": {
                "print": {"circulation": 12000},
                "newsletter": [{"name": "Weekly Digest", "subscribers": 8000}],
            },
            "audienceDemographics": {"totalAudience": 20000},
            "crossChannelPackages": [{"name": "Print + Newsletter"}],
        },
        {
            "_id": {"$oid": "65f0c0ffee"},
            "basicInfo": {
                "publicationName": "Lakeview Radio",
                "publicationType": "radio",
                "description": "Music and talk radio for North Side listeners.",
                "primaryServiceArea": "Lakeview",
            },
            "distributionChannels": {"radio": {"stations": 1}, "print": None},
            "audienceDemographics": {"totalAudience": 35000},
        },
    ]
