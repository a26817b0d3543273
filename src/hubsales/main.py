import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .agent import SalesAssistantService, configuration_status
from .agent.schemas import UpdateContextInput
from .errors import (
    AssistantConfigurationError,
    AssistantError,
    AssistantRateLimitError,
    BlobStorageError,
)
from .models import Attachment, ChatMessage, GeneratedArtifact
from .services.conversation_store import ConversationStore
from .services.publications import PublicationRepository
from .services.redis import get_redis_crud_service
from .services.storage import S3BlobStorage, get_blob_storage
from .settings import get_settings


def setup_server_logging(level: str = "INFO") -> logging.Logger:
    """Configure and return the server logger."""
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("hubsales")
    if logger.handlers:
        return logging.getLogger("hubsales.server")

    logger.setLevel(level)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = RotatingFileHandler(logs_dir / "server.log", maxBytes=5_000_000, backupCount=3)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logging.getLogger("hubsales.server")


def _cors_origins_list(origins: str) -> list[str]:
    """Parse CORS_ORIGINS into a list."""
    if not origins or origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in origins.split(",") if o.strip()]


settings = get_settings()
LOGGER = setup_server_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect Redis, build the assistant service; close Redis on shutdown."""
    app.state.store = None
    app.state.assistant = None
    app.state.storage = get_blob_storage(settings)
    if app.state.storage is None:
        LOGGER.warning("S3_BUCKET is not set; file generation and image attachments are disabled")

    redis_crud = get_redis_crud_service()
    if redis_crud is None:
        LOGGER.warning("REDIS_URL is not set; the assistant is unavailable")
    else:
        try:
            await redis_crud.connect()
        except (RedisConnectionError, RedisTimeoutError, ConnectionError, TimeoutError) as e:
            LOGGER.error("Conversation store unavailable (Redis): %s", e)
            redis_crud = None

    if redis_crud is not None:
        app.state.store = ConversationStore(redis_crud, ttl_seconds=settings.context_ttl_seconds)
        try:
            app.state.assistant = SalesAssistantService.build(
                settings,
                store=app.state.store,
                publications=PublicationRepository(redis_crud),
                storage=app.state.storage,
            )
            LOGGER.info("Hub Sales Assistant ready (model: %s)", settings.model)
        except AssistantConfigurationError as e:
            LOGGER.error("Hub Sales Assistant not configured: %s", e)

    yield

    LOGGER.info("Shutting down...")
    if redis_crud is not None:
        await redis_crud.close()


app = FastAPI(
    title="Hub Sales Assistant",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class HistoryMessage(BaseModel):
    role: str
    content: str


class AttachmentIn(BaseModel):
    id: Optional[str] = None
    filename: str
    mime_type: str
    is_image: bool = False
    storage_key: Optional[str] = None
    extracted_text: Optional[str] = None


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    history: List[HistoryMessage] = Field(default_factory=list)
    attachments: List[AttachmentIn] = Field(default_factory=list)


def get_assistant(request: Request) -> SalesAssistantService:
    assistant = getattr(request.app.state, "assistant", None)
    if assistant is None:
        raise HTTPException(status_code=503, detail="AI service configuration error")
    return assistant


def get_store(request: Request) -> ConversationStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Conversation store is not available")
    return store


def get_storage(request: Request) -> S3BlobStorage | None:
    return getattr(request.app.state, "storage", None)


def _file_summary(artifact: GeneratedArtifact) -> dict[str, Any]:
    return {
        "id": artifact.id,
        "filename": artifact.filename,
        "fileType": artifact.file_type,
        "createdAt": artifact.created_at.isoformat(),
    }


@app.get("/health")
async def health() -> dict[str, Any]:
    """Health check for load balancers and monitoring.

    Returns:
        dict[str, Any]: JSON response with status field.
    """
    return {"status": "ok"}


@app.get("/status")
async def status() -> dict[str, Any]:
    """Configuration readiness of the assistant and its optional tools."""
    return configuration_status(settings)


@app.post("/hubs/{hub_id}/conversations/{conversation_id}/messages")
async def send_message(
    hub_id: str,
    conversation_id: str,
    body: ChatRequest,
    x_user_id: str = Header(...),
    assistant: SalesAssistantService = Depends(get_assistant),
) -> dict[str, Any]:
    """Run one assistant turn and return the answer, generated files and usage.

    The caller owns message persistence: history is supplied in the request
    and the returned answer is not stored here.
    """
    message = body.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required")

    LOGGER.info("Processing message for conversation %s, hub %s", conversation_id, hub_id)
    try:
        result = await assistant.run_turn(
            hub_id=hub_id,
            conversation_id=conversation_id,
            user_id=x_user_id,
            user_message=message,
            prior_messages=[ChatMessage(role=m.role, content=m.content) for m in body.history],
            attachments=[Attachment(**a.model_dump()) for a in body.attachments],
        )
    except AssistantRateLimitError as e:
        raise HTTPException(status_code=429, detail=str(e)) from e
    except AssistantConfigurationError as e:
        raise HTTPException(status_code=500, detail="AI service configuration error") from e
    except AssistantError as e:
        raise HTTPException(status_code=500, detail=str(e) or "Failed to process message") from e

    LOGGER.info(
        "Generated response for conversation %s (%d tokens)",
        conversation_id,
        result.usage.output_tokens,
    )
    return {
        "message": result.answer,
        "generatedFiles": [_file_summary(a) for a in result.artifacts] or None,
        "usage": {
            "inputTokens": result.usage.input_tokens,
            "outputTokens": result.usage.output_tokens,
        },
    }


@app.get("/conversations/{conversation_id}/context")
async def get_context(
    conversation_id: str,
    x_user_id: str = Header(...),
    store: ConversationStore = Depends(get_store),
) -> dict[str, Any]:
    context = await store.read_context(conversation_id, x_user_id)
    return {"context": context.to_dict()}


@app.patch("/conversations/{conversation_id}/context")
async def update_context(
    conversation_id: str,
    body: UpdateContextInput,
    x_user_id: str = Header(...),
    store: ConversationStore = Depends(get_store),
) -> dict[str, Any]:
    update = body.model_dump(exclude_none=True)
    if not await store.merge_context(conversation_id, x_user_id, update):
        raise HTTPException(status_code=500, detail="Failed to update context")
    return {"success": True}


@app.delete("/conversations/{conversation_id}/context")
async def clear_context(
    conversation_id: str,
    x_user_id: str = Header(...),
    store: ConversationStore = Depends(get_store),
) -> dict[str, Any]:
    if not await store.clear_context(conversation_id, x_user_id):
        raise HTTPException(status_code=500, detail="Failed to clear context")
    return {"success": True}


@app.get("/conversations/{conversation_id}/files")
async def list_files(
    conversation_id: str,
    x_user_id: str = Header(...),
    store: ConversationStore = Depends(get_store),
) -> dict[str, Any]:
    files = await store.get_generated_files(conversation_id, x_user_id)
    return {"files": [_file_summary(f) for f in files]}


@app.get("/conversations/{conversation_id}/files/{file_id}/download")
async def download_file(
    conversation_id: str,
    file_id: str,
    x_user_id: str = Header(...),
    store: ConversationStore = Depends(get_store),
    storage: S3BlobStorage | None = Depends(get_storage),
) -> dict[str, Any]:
    artifact = await store.get_generated_file(conversation_id, x_user_id, file_id)
    if artifact is None:
        raise HTTPException(status_code=404, detail="File not found")
    if storage is None:
        raise HTTPException(status_code=500, detail="File storage is not configured")
    try:
        url = await storage.presigned_download_url(
            artifact.storage_key, artifact.filename, settings.download_url_ttl_seconds
        )
    except BlobStorageError as e:
        LOGGER.error("Error getting download URL: %s", e)
        raise HTTPException(status_code=500, detail="Failed to get download URL") from e
    return {"downloadUrl": url}
