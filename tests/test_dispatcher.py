import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from hubsales.agent.dispatcher import ToolDispatcher
from hubsales.agent.schemas import GenerateFileInput, GetInventoryInput
from hubsales.models import GeneratedArtifact, ToolExecutionContext, ToolInvocation, ToolOutcome


@pytest.fixture
def handlers() -> MagicMock:
    m = MagicMock()
    m.web_search = AsyncMock(return_value=ToolOutcome(content='{"answer": "ok"}'))
    m.get_inventory = AsyncMock(return_value=ToolOutcome(content='{"totalPublishers": 1}'))
    m.update_context = AsyncMock(return_value=ToolOutcome(content='{"success": true}'))
    m.generate_file = AsyncMock(
        return_value=ToolOutcome(
            content='{"success": true}',
            artifact=GeneratedArtifact(
                id="f1", filename="x.csv", file_type="package_csv", storage_key="k"
            ),
        )
    )
    return m


@pytest.fixture
def dispatcher(handlers: MagicMock) -> ToolDispatcher:
    return ToolDispatcher(handlers)


def _error_of(outcome: ToolOutcome) -> str:
    return json.loads(outcome.content)["error"]


@pytest.mark.asyncio
async def test_routes_validated_input_to_handler(
    dispatcher: ToolDispatcher, handlers: MagicMock, tool_ctx: ToolExecutionContext
) -> None:
    outcome = await dispatcher.dispatch(
        ToolInvocation(id="call_1", name="get_inventory", arguments='{"query_type": "summary"}'),
        tool_ctx,
    )
    assert json.loads(outcome.content) == {"totalPublishers": 1}
    payload, ctx = handlers.get_inventory.await_args.args
    assert isinstance(payload, GetInventoryInput)
    assert payload.query_type == "summary"
    assert ctx is tool_ctx


@pytest.mark.asyncio
async def test_passes_artifact_through(
    dispatcher: ToolDispatcher, handlers: MagicMock, tool_ctx: ToolExecutionContext
) -> None:
    outcome = await dispatcher.dispatch(
        ToolInvocation(
            id="call_1",
            name="generate_file",
            arguments=json.dumps({"file_type": "tabular-export", "content": "a,b\n1,2"}),
        ),
        tool_ctx,
    )
    assert outcome.artifact is not None and outcome.artifact.id == "f1"
    payload = handlers.generate_file.await_args.args[0]
    assert isinstance(payload, GenerateFileInput)
    assert payload.file_type == "package_csv"


@pytest.mark.asyncio
async def test_unknown_tool(dispatcher: ToolDispatcher, tool_ctx: ToolExecutionContext) -> None:
    outcome = await dispatcher.dispatch(
        ToolInvocation(id="call_1", name="send_invoice", arguments="{}"), tool_ctx
    )
    assert _error_of(outcome) == "Unknown tool: send_invoice"
    assert outcome.artifact is None


@pytest.mark.asyncio
async def test_invalid_json_arguments(
    dispatcher: ToolDispatcher, handlers: MagicMock, tool_ctx: ToolExecutionContext
) -> None:
    outcome = await dispatcher.dispatch(
        ToolInvocation(id="call_1", name="web_search", arguments='{"query": '), tool_ctx
    )
    assert _error_of(outcome).startswith("Invalid arguments for web_search")
    handlers.web_search.assert_not_called()


@pytest.mark.asyncio
async def test_non_object_arguments(dispatcher: ToolDispatcher, tool_ctx: ToolExecutionContext) -> None:
    outcome = await dispatcher.dispatch(
        ToolInvocation(id="call_1", name="web_search", arguments='["Acme"]'), tool_ctx
    )
    assert "expected a JSON object" in _error_of(outcome)


@pytest.mark.asyncio
async def test_schema_violation_is_reported(
    dispatcher: ToolDispatcher, handlers: MagicMock, tool_ctx: ToolExecutionContext
) -> None:
    outcome = await dispatcher.dispatch(
        ToolInvocation(
            id="call_1",
            name="get_inventory",
            arguments='{"query_type": "publisher_details"}',
        ),
        tool_ctx,
    )
    assert "publisher_id is required" in _error_of(outcome)
    handlers.get_inventory.assert_not_called()


@pytest.mark.asyncio
async def test_empty_query_rejected(
    dispatcher: ToolDispatcher, handlers: MagicMock, tool_ctx: ToolExecutionContext
) -> None:
    outcome = await dispatcher.dispatch(
        ToolInvocation(id="call_1", name="web_search", arguments='{"query": "   "}'), tool_ctx
    )
    assert _error_of(outcome).startswith("Invalid arguments for web_search: query")
    handlers.web_search.assert_not_called()


@pytest.mark.asyncio
async def test_handler_exception_becomes_error_payload(
    dispatcher: ToolDispatcher, handlers: MagicMock, tool_ctx: ToolExecutionContext
) -> None:
    handlers.update_context.side_effect = RuntimeError("boom")
    outcome = await dispatcher.dispatch(
        ToolInvocation(id="call_1", name="update_context", arguments='{"notes": "x"}'), tool_ctx
    )
    assert _error_of(outcome) == "Tool update_context failed: boom"
    assert outcome.artifact is None


@pytest.mark.asyncio
async def test_empty_arguments_treated_as_empty_object(
    dispatcher: ToolDispatcher, handlers: MagicMock, tool_ctx: ToolExecutionContext
) -> None:
    await dispatcher.dispatch(
        ToolInvocation(id="call_1", name="update_context", arguments=""), tool_ctx
    )
    handlers.update_context.assert_awaited_once()


def test_every_tool_has_a_route(handlers: MagicMock) -> None:
    from hubsales.agent.catalog import ToolName, get_tool_catalog

    names = [t["function"]["name"] for t in get_tool_catalog()]
    assert names == [t.value for t in ToolName]
    ToolDispatcher(handlers)
