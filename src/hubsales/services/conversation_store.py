import json
import logging
from typing import Any, Dict, List

from ..models import GeneratedArtifact, SessionContext, is_blank
from .redis import RedisCrudService

logger = logging.getLogger(__name__)

CONVERSATION_KEY_PREFIX = "conversation:"


class ConversationStore:
    """Conversation-scoped session context and generated-file records in Redis.

    The context lives in a hash with one JSON-encoded field per context key,
    so a merge is a plain HSET: supplied fields are overwritten, all others
    are left as they were.
    """

    def __init__(
        self,
        redis_crud: RedisCrudService,
        ttl_seconds: int = 0,
    ) -> None:
        self._redis = redis_crud
        self._ttl = ttl_seconds

    def _key(self, conversation_id: str, user_id: str, suffix: str) -> str:
        return f"{CONVERSATION_KEY_PREFIX}{user_id}:{conversation_id}:{suffix}"

    async def read_context(self, conversation_id: str, user_id: str) -> SessionContext:
        """Load the session context; an unknown conversation yields an empty one."""
        raw = await self._redis.hgetall(self._key(conversation_id, user_id, "context"))
        if not raw:
            return SessionContext()
        data: Dict[str, Any] = {}
        for name, encoded in raw.items():
            try:
                data[name] = json.loads(encoded)
            except (json.JSONDecodeError, TypeError) as e:
                logger.warning(
                    "Invalid context field %s for %s: %s", name, conversation_id, e
                )
        return SessionContext.from_dict(data)

    async def merge_context(
        self,
        conversation_id: str,
        user_id: str,
        update: Dict[str, Any],
    ) -> bool:
        """Upsert the non-blank fields of update. Returns True on success."""
        known = set(SessionContext.field_names())
        unknown = sorted(set(update) - known)
        if unknown:
            raise ValueError(f"Unknown context fields: {', '.join(unknown)}")
        mapping = {k: json.dumps(v) for k, v in update.items() if not is_blank(v)}
        return await self._redis.hset_many(
            self._key(conversation_id, user_id, "context"),
            mapping,
            ttl_seconds=self._ttl,
        )

    async def clear_context(self, conversation_id: str, user_id: str) -> bool:
        return await self._redis.delete(self._key(conversation_id, user_id, "context"))

    async def add_generated_file(
        self,
        conversation_id: str,
        user_id: str,
        artifact: GeneratedArtifact,
    ) -> bool:
        """Append an artifact record to the conversation. Returns True on success."""
        return await self._redis.rpush(
            self._key(conversation_id, user_id, "files"),
            json.dumps(artifact.to_dict()),
            ttl_seconds=self._ttl,
        )

    async def get_generated_files(
        self, conversation_id: str, user_id: str
    ) -> List[GeneratedArtifact]:
        raw = await self._redis.lrange(self._key(conversation_id, user_id, "files"))
        artifacts: List[GeneratedArtifact] = []
        for item in raw or []:
            try:
                artifacts.append(GeneratedArtifact.from_dict(json.loads(item)))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Invalid file record for %s: %s", conversation_id, e)
        return artifacts

    async def get_generated_file(
        self, conversation_id: str, user_id: str, file_id: str
    ) -> GeneratedArtifact | None:
        for artifact in await self.get_generated_files(conversation_id, user_id):
            if artifact.id == file_id:
                return artifact
        return None
