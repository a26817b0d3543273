import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from ..errors import AssistantConfigurationError
from ..models import ToolInvocation
from ..settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class ModelResponse:
    """One chat completion, reduced to what the turn loop needs."""

    text: str = ""
    tool_invocations: List[ToolInvocation] = field(default_factory=list)
    stop_reason: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0

    def assistant_message(self) -> Dict[str, Any]:
        """The assistant message to append before the tool results."""
        message: Dict[str, Any] = {"role": "assistant", "content": self.text or None}
        if self.tool_invocations:
            message["tool_calls"] = [
                {
                    "id": inv.id,
                    "type": "function",
                    "function": {"name": inv.name, "arguments": inv.arguments or "{}"},
                }
                for inv in self.tool_invocations
            ]
        return message


class ChatModel:
    """Chat-completions client with tool calling.

    Errors from the OpenAI SDK are not caught here; the turn orchestrator
    maps them to assistant errors.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 8192,
        temperature: float = 0.2,
        timeout: float = 120.0,
    ) -> None:
        if not api_key:
            raise AssistantConfigurationError("OPENAI_API_KEY environment variable is not set")
        self.model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatModel":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.model,
            base_url=settings.openai_base_url,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            timeout=settings.model_request_timeout_seconds,
        )

    async def complete(
        self,
        system: str,
        tools: List[Dict[str, Any]],
        messages: List[Dict[str, Any]],
    ) -> ModelResponse:
        """Send the conversation and return text, tool calls, stop reason and usage.

        Args:
            system: System instructions, sent as the first message.
            tools: Tool catalog in OpenAI function format.
            messages: Conversation so far, oldest first.

        Returns:
            ModelResponse: Parsed completion.
        """
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "system", "content": system}, *messages],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }
        if tools:
            request["tools"] = tools
            request["tool_choice"] = "auto"
        completion = await self._client.chat.completions.create(**request)

        response = ModelResponse()
        if completion.usage is not None:
            response.input_tokens = completion.usage.prompt_tokens or 0
            response.output_tokens = completion.usage.completion_tokens or 0
        if not completion.choices:
            return response

        choice = completion.choices[0]
        response.stop_reason = choice.finish_reason
        response.text = choice.message.content or ""
        for tc in choice.message.tool_calls or []:
            function = getattr(tc, "function", None)
            if function is None or not function.name:
                continue
            response.tool_invocations.append(
                ToolInvocation(id=tc.id, name=function.name, arguments=function.arguments or "")
            )
        return response
