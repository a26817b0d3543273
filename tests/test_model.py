from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from hubsales.agent.model import ChatModel, ModelResponse
from hubsales.errors import AssistantConfigurationError
from hubsales.models import ToolInvocation


def _completion(content=None, tool_calls=None, finish_reason="stop", usage=(12, 3)):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason=finish_reason)],
        usage=SimpleNamespace(prompt_tokens=usage[0], completion_tokens=usage[1]),
    )


def _tool_call(call_id: str, name: str, arguments: str):
    return SimpleNamespace(
        id=call_id, type="function", function=SimpleNamespace(name=name, arguments=arguments)
    )


@pytest.fixture
def chat_model() -> ChatModel:
    m = ChatModel(api_key="sk-test", model="gpt-test", max_tokens=256, temperature=0.1)
    m._client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock()))
    )
    return m


def test_missing_key_is_a_configuration_error() -> None:
    with pytest.raises(AssistantConfigurationError):
        ChatModel(api_key=None, model="gpt-test")


@pytest.mark.asyncio
async def test_complete_parses_text_and_usage(chat_model: ChatModel) -> None:
    create = chat_model._client.chat.completions.create
    create.return_value = _completion(content="Hello")
    response = await chat_model.complete("sys", [{"type": "function"}], [{"role": "user", "content": "hi"}])

    assert response.text == "Hello"
    assert response.stop_reason == "stop"
    assert response.tool_invocations == []
    assert (response.input_tokens, response.output_tokens) == (12, 3)

    kwargs = create.await_args.kwargs
    assert kwargs["model"] == "gpt-test"
    assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
    assert kwargs["messages"][1] == {"role": "user", "content": "hi"}
    assert kwargs["tool_choice"] == "auto"
    assert kwargs["max_tokens"] == 256


@pytest.mark.asyncio
async def test_complete_parses_tool_calls_in_order(chat_model: ChatModel) -> None:
    chat_model._client.chat.completions.create.return_value = _completion(
        tool_calls=[
            _tool_call("call_1", "web_search", '{"query": "Acme"}'),
            _tool_call("call_2", "get_inventory", ""),
        ],
        finish_reason="tool_calls",
    )
    response = await chat_model.complete("sys", [], [])
    assert response.text == ""
    assert [inv.name for inv in response.tool_invocations] == ["web_search", "get_inventory"]
    assert response.tool_invocations[1].arguments == ""


@pytest.mark.asyncio
async def test_no_tools_means_no_tool_choice(chat_model: ChatModel) -> None:
    create = chat_model._client.chat.completions.create
    create.return_value = _completion(content="x")
    await chat_model.complete("sys", [], [])
    assert "tools" not in create.await_args.kwargs
    assert "tool_choice" not in create.await_args.kwargs


def test_assistant_message_echoes_tool_calls() -> None:
    response = ModelResponse(
        tool_invocations=[ToolInvocation(id="call_1", name="get_inventory", arguments="")]
    )
    message = response.assistant_message()
    assert message["role"] == "assistant"
    assert message["content"] is None
    assert message["tool_calls"][0]["function"] == {"name": "get_inventory", "arguments": "{}"}
