"""
Agent tools: registry, definitions and execution for tool-calling mode.

Each tool is a ToolSpec: name, description, a pydantic model for its arguments and an async
handler. Arguments are validated before the handler runs. Unknown tools, invalid arguments
and handler faults all come back as JSON error payloads, so a bad tool call never aborts
the turn.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from inventory_agent.agent.messages import Message, ToolCall
from inventory_agent.services.search_service import SearchQuery, item_lookup

if TYPE_CHECKING:
    from inventory_agent.agent.context import AgentContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: type[BaseModel]
    handler: Callable[[Any, "AgentContext"], Awaitable[str]]

    def to_openai(self) -> dict[str, Any]:
        """OpenAI function-calling definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.args_model.model_json_schema(),
            },
        }


async def _run_item_lookup(args: SearchQuery, ctx: AgentContext) -> str:
    return await item_lookup(args, ctx.inventory)


ITEM_LOOKUP = ToolSpec(
    name="item_lookup",
    description="Gathers furniture item details from the Inventory database",
    args_model=SearchQuery,
    handler=_run_item_lookup,
)

TOOL_REGISTRY: dict[str, ToolSpec] = {spec.name: spec for spec in (ITEM_LOOKUP,)}

# OpenAI function-calling format: list of tool definitions
AGENT_TOOLS: list[dict[str, Any]] = [spec.to_openai() for spec in TOOL_REGISTRY.values()]


def _error(error: str, **extra: Any) -> str:
    return json.dumps({"error": error, **extra}, default=str)


async def execute_tool(
    call: ToolCall,
    ctx: AgentContext,
    registry: dict[str, ToolSpec] = TOOL_REGISTRY,
) -> str:
    """
    Execute a tool call by name with validated arguments. Returns a string result for the LLM.
    """
    logger.info("[tools] execute_tool name=%r arguments=%r", call.name, call.arguments)
    spec = registry.get(call.name)
    if spec is None:
        logger.warning("[tools] unknown tool %r", call.name)
        return _error(f"Unknown tool: {call.name}", available=sorted(registry))

    try:
        args = spec.args_model.model_validate(call.arguments)
    except ValidationError as e:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        logger.warning("[tools] invalid arguments for %s: %s", call.name, details)
        return _error(f"Invalid arguments for {call.name}", details=details)

    try:
        return await spec.handler(args, ctx)
    except Exception as e:
        logger.exception("[tools] %s failed", call.name)
        return _error(f"Tool {call.name} failed", details=str(e))


async def run_tool_calls(message: Message, ctx: AgentContext) -> list[Message]:
    """Run every tool call on an ai message, in order, returning one tool message per call."""
    results: list[Message] = []
    for call in message.tool_calls:
        content = await execute_tool(call, ctx)
        results.append(Message.tool(content, tool_call_id=call.id))
    return results
