import json
import logging
from typing import Awaitable, Callable, Dict, Tuple, Type

from pydantic import ValidationError

from ..models import ToolExecutionContext, ToolInvocation, ToolOutcome
from .catalog import ToolName
from .handlers import ToolHandlers
from .schemas import (
    GenerateFileInput,
    GetInventoryInput,
    ToolInput,
    UpdateContextInput,
    WebSearchInput,
)

logger = logging.getLogger(__name__)

Handler = Callable[[ToolInput, ToolExecutionContext], Awaitable[ToolOutcome]]


def _error(message: str) -> ToolOutcome:
    return ToolOutcome(content=json.dumps({"error": message}))


class ToolDispatcher:
    """Routes tool invocations to their handlers.

    dispatch() never raises: unknown tools, unparsable or invalid arguments
    and handler exceptions all come back as an {"error": ...} payload.
    """

    def __init__(self, handlers: ToolHandlers) -> None:
        self._routes: Dict[ToolName, Tuple[Type[ToolInput], Handler]] = {
            ToolName.WEB_SEARCH: (WebSearchInput, handlers.web_search),
            ToolName.GET_INVENTORY: (GetInventoryInput, handlers.get_inventory),
            ToolName.UPDATE_CONTEXT: (UpdateContextInput, handlers.update_context),
            ToolName.GENERATE_FILE: (GenerateFileInput, handlers.generate_file),
        }
        missing = set(ToolName) - set(self._routes)
        if missing:
            raise RuntimeError(
                f"No handler registered for: {', '.join(sorted(m.value for m in missing))}"
            )

    async def dispatch(
        self, invocation: ToolInvocation, ctx: ToolExecutionContext
    ) -> ToolOutcome:
        """Execute one tool invocation and return its outcome.

        Args:
            invocation: Tool name, raw JSON arguments and call id from the model.
            ctx: Hub, conversation and user the turn runs for.

        Returns:
            ToolOutcome: JSON text for the model plus the artifact, if any.
        """
        logger.info("Executing tool: %s", invocation.name)
        try:
            name = ToolName(invocation.name)
        except ValueError:
            logger.warning("Model requested unknown tool %s", invocation.name)
            return _error(f"Unknown tool: {invocation.name}")

        input_model, handler = self._routes[name]

        try:
            arguments = json.loads(invocation.arguments) if invocation.arguments else {}
        except json.JSONDecodeError as e:
            logger.error("Invalid tool arguments for %s: %s", invocation.name, e)
            return _error(f"Invalid arguments for {invocation.name}: {e}")
        if not isinstance(arguments, dict):
            return _error(f"Invalid arguments for {invocation.name}: expected a JSON object")

        try:
            payload = input_model.model_validate(arguments)
        except ValidationError as e:
            logger.error("Rejected arguments for %s: %s", invocation.name, e)
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
                for err in e.errors()
            )
            return _error(f"Invalid arguments for {invocation.name}: {problems}")

        try:
            outcome = await handler(payload, ctx)
        except Exception as e:
            logger.exception("Tool %s failed: %s", invocation.name, e)
            return _error(f"Tool {invocation.name} failed: {e}")

        logger.debug("Tool %s completed", invocation.name)
        return outcome
