import json
import logging
import time
import uuid
from typing import Any, Dict, List

from ..errors import BlobStorageError
from ..models import GeneratedArtifact, ToolExecutionContext, ToolOutcome
from ..services.conversation_store import ConversationStore
from ..services.publications import PublicationRepository, PublicationStoreError
from ..services.storage import S3BlobStorage
from ..services.web_search import WebSearchError, WebSearchService
from .catalog import CHANNELS
from .schemas import GenerateFileInput, GetInventoryInput, UpdateContextInput, WebSearchInput

logger = logging.getLogger(__name__)

FILE_FORMATS = {
    "proposal_md": ("md", "text/markdown"),
    "package_csv": ("csv", "text/csv"),
}


def _json(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, default=str)


def _error(message: str, **extra: Any) -> ToolOutcome:
    return ToolOutcome(content=_json({"error": message, **extra}))


def _object_id(pub: Dict[str, Any]) -> str | None:
    raw = pub.get("_id")
    if isinstance(raw, dict):
        raw = raw.get("$oid")
    return str(raw) if raw is not None else None


def _publication_id(pub: Dict[str, Any]) -> str | None:
    if pub.get("publicationId") is not None:
        return str(pub["publicationId"])
    return _object_id(pub)


def _matches_id(pub: Dict[str, Any], publisher_id: str) -> bool:
    """A publication answers to its publicationId and to its document _id."""
    if pub.get("publicationId") is not None and str(pub["publicationId"]) == publisher_id:
        return True
    return _object_id(pub) == publisher_id


def _basic(pub: Dict[str, Any]) -> Dict[str, Any]:
    return pub.get("basicInfo") or {}


def _channels(pub: Dict[str, Any]) -> Dict[str, Any]:
    return pub.get("distributionChannels") or {}


def _audience_total(pub: Dict[str, Any]) -> int:
    raw = (pub.get("audienceDemographics") or {}).get("totalAudience")
    try:
        return int(raw or 0)
    except (TypeError, ValueError):
        return 0


def _output_filename(hint: str | None, ext: str) -> str:
    name = (hint or "").strip().replace("/", "_").replace("\\", "_")
    if name.lower().endswith(f".{ext}"):
        name = name[: -(len(ext) + 1)]
    if not name:
        name = f"generated_{int(time.time() * 1000)}"
    return f"{name}.{ext}"


class ToolHandlers:
    """Implementations of the four assistant tools.

    Every handler returns a ToolOutcome whose content is a JSON object, also
    for expected failures (missing configuration, unknown ids, storage
    errors) so the model can react to them.
    """

    def __init__(
        self,
        web_search: WebSearchService,
        publications: PublicationRepository,
        store: ConversationStore,
        storage: S3BlobStorage | None,
    ) -> None:
        self._web_search = web_search
        self._publications = publications
        self._store = store
        self._storage = storage

    async def web_search(
        self, payload: WebSearchInput, ctx: ToolExecutionContext
    ) -> ToolOutcome:
        if not self._web_search.is_configured():
            return _error(
                "Web search is not configured. PERPLEXITY_API_KEY is not set.",
                suggestion="Ask the user to provide brand information directly.",
            )
        try:
            if payload.search_type == "brand_research":
                results = await self._web_search.research_brand(payload.query, payload.brand_url)
            elif payload.search_type == "company_news":
                results = await self._web_search.search_company_news(payload.query)
            elif payload.search_type == "competitors":
                results = await self._web_search.search_competitors(payload.query, payload.industry)
            else:
                results = await self._web_search.search(payload.query)
        except WebSearchError as e:
            return _error(
                f"Search failed: {e}",
                suggestion="Try a different search query or ask the user for information directly.",
            )
        return ToolOutcome(
            content=_json(
                {
                    "searchType": payload.search_type,
                    "query": results.query,
                    "answer": results.answer,
                    "sources": [{"title": s.title, "url": s.url} for s in results.sources],
                }
            )
        )

    async def get_inventory(
        self, payload: GetInventoryInput, ctx: ToolExecutionContext
    ) -> ToolOutcome:
        try:
            publications = await self._publications.get_hub_publications(ctx.hub_id)
        except PublicationStoreError as e:
            return _error(f"Inventory query failed: {e}")
        if not publications:
            return _error("No publications found for this hub.")

        if payload.query_type == "summary":
            return ToolOutcome(content=_json(self._summary(publications)))
        if payload.query_type == "all_publishers":
            return ToolOutcome(
                content=_json(
                    {
                        "totalPublishers": len(publications),
                        "publishers": [self._listing(p) for p in publications],
                    }
                )
            )
        if payload.query_type == "publisher_details":
            pub = next(
                (p for p in publications if _matches_id(p, payload.publisher_id)),
                None,
            )
            if pub is None:
                return _error(f"Publisher not found: {payload.publisher_id}")
            return ToolOutcome(content=_json(self._details(pub)))
        if payload.query_type == "placements_by_channel":
            channel_pubs = [p for p in publications if _channels(p).get(payload.channel)]
            return ToolOutcome(
                content=_json(
                    {
                        "channel": payload.channel,
                        "publisherCount": len(channel_pubs),
                        "placements": [
                            {
                                "publisherId": _publication_id(p),
                                "publisherName": _basic(p).get("publicationName"),
                                "channelData": _channels(p)[payload.channel],
                            }
                            for p in channel_pubs
                        ],
                    }
                )
            )
        return ToolOutcome(content=_json(self._search(publications, payload.search_term or "")))

    @staticmethod
    def _summary(publications: List[Dict[str, Any]]) -> Dict[str, Any]:
        channel_counts: Dict[str, int] = {}
        for pub in publications:
            for ch in CHANNELS:
                if _channels(pub).get(ch):
                    channel_counts[ch] = channel_counts.get(ch, 0) + 1
        return {
            "totalPublishers": len(publications),
            "totalAudienceReach": sum(_audience_total(p) for p in publications),
            "channelCounts": channel_counts,
            "publisherNames": [
                _basic(p)["publicationName"]
                for p in publications
                if _basic(p).get("publicationName")
            ],
        }

    @staticmethod
    def _listing(pub: Dict[str, Any]) -> Dict[str, Any]:
        basic = _basic(pub)
        return {
            "id": _publication_id(pub),
            "name": basic.get("publicationName"),
            "type": basic.get("publicationType"),
            "location": basic.get("primaryServiceArea"),
            "channels": [ch for ch, data in _channels(pub).items() if data],
            "audience": _audience_total(pub),
        }

    @staticmethod
    def _details(pub: Dict[str, Any]) -> Dict[str, Any]:
        basic = _basic(pub)
        return {
            "id": _publication_id(pub),
            "name": basic.get("publicationName"),
            "type": basic.get("publicationType"),
            "description": basic.get("description"),
            "location": basic.get("primaryServiceArea"),
            "coverage": basic.get("geographicCoverage"),
            "channels": pub.get("distributionChannels"),
            "audience": pub.get("audienceDemographics"),
            "packages": pub.get("crossChannelPackages"),
        }

    @staticmethod
    def _search(publications: List[Dict[str, Any]], search_term: str) -> Dict[str, Any]:
        term = search_term.lower()
        matches = []
        for pub in publications:
            basic = _basic(pub)
            haystack = [
                (basic.get("publicationName") or "").lower(),
                (basic.get("description") or "").lower(),
                (basic.get("primaryServiceArea") or "").lower(),
            ]
            if any(term in field for field in haystack):
                matches.append(pub)
        return {
            "searchTerm": search_term,
            "matchCount": len(matches),
            "matches": [
                {
                    "id": _publication_id(p),
                    "name": _basic(p).get("publicationName"),
                    "type": _basic(p).get("publicationType"),
                    "location": _basic(p).get("primaryServiceArea"),
                    "description": (_basic(p).get("description") or "")[:200] or None,
                }
                for p in matches
            ],
        }

    async def update_context(
        self, payload: UpdateContextInput, ctx: ToolExecutionContext
    ) -> ToolOutcome:
        update = payload.model_dump(exclude_none=True)
        update = {k: v for k, v in update.items() if v != "" and v != []}
        if not update:
            return ToolOutcome(
                content=_json(
                    {"success": True, "message": "No context fields provided", "updated": []}
                )
            )
        ok = await self._store.merge_context(ctx.conversation_id, ctx.user_id, update)
        if not ok:
            return _error("Failed to update context: conversation store unavailable")
        logger.info(
            "Context updated for conversation %s: %s", ctx.conversation_id, ", ".join(update)
        )
        return ToolOutcome(
            content=_json(
                {
                    "success": True,
                    "message": "Context updated successfully",
                    "updated": list(update),
                }
            )
        )

    async def generate_file(
        self, payload: GenerateFileInput, ctx: ToolExecutionContext
    ) -> ToolOutcome:
        if self._storage is None:
            return _error("File storage is not configured")

        ext, content_type = FILE_FORMATS[payload.file_type]
        filename = _output_filename(payload.filename, ext)
        file_id = uuid.uuid4().hex
        # one prefix per artifact, so a reused filename never replaces a recorded blob
        storage_key = f"conversations/{ctx.conversation_id}/generated/{file_id}/{filename}"

        try:
            await self._storage.put_bytes(
                storage_key,
                payload.content.encode("utf-8"),
                content_type=content_type,
                metadata={
                    "conversationId": ctx.conversation_id,
                    "userId": ctx.user_id,
                    "fileType": payload.file_type,
                },
            )
        except BlobStorageError as e:
            return _error(f"Failed to generate file: {e}")

        artifact = GeneratedArtifact(
            id=file_id,
            filename=filename,
            file_type=payload.file_type,
            storage_key=storage_key,
        )
        recorded = await self._store.add_generated_file(ctx.conversation_id, ctx.user_id, artifact)
        if not recorded:
            try:
                await self._storage.delete(storage_key)
            except BlobStorageError as e:
                logger.warning("Could not remove unrecorded file %s: %s", storage_key, e)
            return _error("Failed to generate file: could not record the file")

        logger.info("Generated %s for conversation %s", filename, ctx.conversation_id)
        return ToolOutcome(
            content=_json(
                {
                    "success": True,
                    "fileId": artifact.id,
                    "filename": filename,
                    "message": (
                        "File generated successfully. The user can download it using "
                        "the download button."
                    ),
                }
            ),
            artifact=artifact,
        )
