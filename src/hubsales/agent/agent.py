import logging
from typing import Any, Dict, List, Sequence

import openai

from ..errors import (
    AssistantConfigurationError,
    AssistantModelError,
    AssistantRateLimitError,
)
from ..models import Attachment, ChatMessage, ToolExecutionContext, TurnResult
from ..services.conversation_store import ConversationStore
from ..services.publications import PublicationRepository
from ..services.storage import S3BlobStorage
from ..services.web_search import WebSearchService
from ..settings import Settings, get_settings
from .accumulator import TurnAccumulator
from .catalog import get_tool_catalog
from .dispatcher import ToolDispatcher
from .handlers import ToolHandlers
from .messages import build_conversation, build_system_prompt
from .model import ChatModel, ModelResponse

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = "I apologize, but I was unable to generate a response."


class SalesAssistantService:
    """Runs Hub Sales Assistant turns: prompt assembly, the tool loop, and usage.

    A turn calls the model, dispatches any requested tools one at a time in
    request order, feeds their results back, and repeats until the model
    answers without tools or the iteration cap is reached.
    """

    def __init__(
        self,
        model: ChatModel,
        dispatcher: ToolDispatcher,
        store: ConversationStore,
        publications: PublicationRepository,
        storage: S3BlobStorage | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._model = model
        self._dispatcher = dispatcher
        self._store = store
        self._publications = publications
        self._storage = storage
        self._settings = settings or get_settings()
        self._max_iterations = max(1, self._settings.max_tool_iterations)

    @classmethod
    def build(
        cls,
        settings: Settings,
        store: ConversationStore,
        publications: PublicationRepository,
        storage: S3BlobStorage | None,
        web_search: WebSearchService | None = None,
    ) -> "SalesAssistantService":
        """Wire the service and its tool handlers from settings and collaborators."""
        handlers = ToolHandlers(
            web_search=web_search or WebSearchService(settings),
            publications=publications,
            store=store,
            storage=storage,
        )
        return cls(
            model=ChatModel.from_settings(settings),
            dispatcher=ToolDispatcher(handlers),
            store=store,
            publications=publications,
            storage=storage,
            settings=settings,
        )

    @staticmethod
    def _is_final(response: ModelResponse) -> bool:
        if not response.tool_invocations:
            return True
        # A natural stop only ends the turn when there is text to hand back.
        return response.stop_reason == "stop" and bool(response.text.strip())

    async def run_turn(
        self,
        hub_id: str,
        conversation_id: str,
        user_id: str,
        user_message: str,
        prior_messages: Sequence[ChatMessage] = (),
        attachments: Sequence[Attachment] | None = None,
    ) -> TurnResult:
        """Answer one user message.

        Args:
            hub_id: Hub (tenant) whose inventory the assistant may query.
            conversation_id: Conversation the context and files belong to.
            user_id: Acting user.
            user_message: The new message text.
            prior_messages: Earlier messages of the conversation, oldest first.
            attachments: Files the user attached to the conversation.

        Returns:
            TurnResult: Final answer, generated files and aggregated token usage.

        Raises:
            AssistantConfigurationError: The model rejected the credentials.
            AssistantRateLimitError: The model provider is rate limiting.
            AssistantModelError: Any other model call failure.
        """
        logger.info("Processing message for conversation: %s", conversation_id)
        try:
            return await self._run_turn(
                hub_id, conversation_id, user_id, user_message, prior_messages, attachments
            )
        except openai.AuthenticationError as e:
            logger.error("Model authentication failed: %s", e)
            raise AssistantConfigurationError(
                "API key is invalid. Please check your configuration."
            ) from e
        except openai.RateLimitError as e:
            logger.warning("Model rate limit hit: %s", e)
            raise AssistantRateLimitError(
                "Rate limit exceeded. Please try again in a moment."
            ) from e
        except openai.OpenAIError as e:
            logger.exception("Model call failed: %s", e)
            raise AssistantModelError(f"Failed to generate response: {e}") from e

    async def _run_turn(
        self,
        hub_id: str,
        conversation_id: str,
        user_id: str,
        user_message: str,
        prior_messages: Sequence[ChatMessage],
        attachments: Sequence[Attachment] | None,
    ) -> TurnResult:
        hub_name = await self._publications.get_hub_name(hub_id) or hub_id
        context = await self._store.read_context(conversation_id, user_id)
        system_prompt = build_system_prompt(
            self._settings.agent_system_prompt, hub_name, context
        )
        messages: List[Dict[str, Any]] = await build_conversation(
            prior_messages,
            self._settings.history_window,
            user_message,
            attachments,
            self._storage,
        )
        tools = get_tool_catalog()
        tool_ctx = ToolExecutionContext(
            hub_id=hub_id, conversation_id=conversation_id, user_id=user_id
        )
        accumulator = TurnAccumulator()

        response = ModelResponse()
        for iteration in range(1, self._max_iterations + 1):
            logger.info("Model call iteration %d", iteration)
            response = await self._model.complete(system_prompt, tools, messages)
            accumulator.record_model_call(response.input_tokens, response.output_tokens)

            if self._is_final(response):
                break

            tool_results: List[Dict[str, Any]] = []
            for invocation in response.tool_invocations:
                outcome = await self._dispatcher.dispatch(invocation, tool_ctx)
                accumulator.record_artifact(outcome.artifact)
                tool_results.append(
                    {
                        "role": "tool",
                        "tool_call_id": invocation.id,
                        "content": outcome.content,
                    }
                )
            logger.info(
                "Conversation %s: tools called in order: %s",
                conversation_id,
                ", ".join(inv.name for inv in response.tool_invocations),
            )
            messages.append(response.assistant_message())
            messages.extend(tool_results)
        else:
            logger.warning(
                "Conversation %s reached the tool iteration cap (%d)",
                conversation_id,
                self._max_iterations,
            )

        answer = response.text.strip() or FALLBACK_ANSWER
        logger.info(
            "Completed after %d iterations, %d input tokens, %d output tokens",
            accumulator.iterations,
            accumulator.usage.input_tokens,
            accumulator.usage.output_tokens,
        )
        return accumulator.result(answer, model=self._model.model)


def configuration_status(settings: Settings) -> Dict[str, Any]:
    """Report whether the assistant can run; web search is optional."""
    issues: List[str] = []
    if not settings.openai_api_key:
        issues.append("OPENAI_API_KEY is not set")
    if not settings.perplexity_api_key:
        issues.append("PERPLEXITY_API_KEY is not set (web search will be disabled)")
    if not settings.s3_bucket:
        issues.append("S3_BUCKET is not set (file generation will be disabled)")
    return {"ready": bool(settings.openai_api_key), "issues": issues}
