"""
Agent loop: agent → (tools → agent)* → end, as an explicit state machine.

The agent node asks the model for the next message; if that message carries tool calls the
tools node runs them and control returns to the agent. Every node execution counts as a
step, and a turn that needs more than recursion_limit steps is aborted.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable

from inventory_agent.agent.context import AgentContext
from inventory_agent.agent.messages import ConversationState, Role
from inventory_agent.agent.retry import retry_with_backoff
from inventory_agent.agent.tools import AGENT_TOOLS, run_tool_calls
from inventory_agent.core.errors import RecursionLimitExceededError

logger = logging.getLogger(__name__)


class Node(str, Enum):
    AGENT = "agent"
    TOOLS = "tools"
    END = "end"


SYSTEM_PROMPT = """You are a helpful E-commerce Chatbot Agent for a furniture store.

IMPORTANT: You have access to an item_lookup tool that searches the furniture inventory database. ALWAYS use this tool when customers ask about furniture items, even if the tool returns errors or empty results.

When using the item_lookup tool:
- If it returns results, provide helpful details about the furniture items
- If it returns an error or no results, acknowledge this and offer to help in other ways
- If the database appears to be empty, let the customer know that inventory might be being updated

Current time: {time}"""


def build_system_prompt(now: datetime) -> str:
    return SYSTEM_PROMPT.format(time=now.isoformat())


def route_after_agent(state: ConversationState) -> Node:
    """Tool calls on the last ai message → tools; anything else ends the turn."""
    last = state.last
    if last is not None and last.role is Role.AI and last.tool_calls:
        return Node.TOOLS
    return Node.END


def next_node(current: Node, state: ConversationState) -> Node:
    if current is Node.AGENT:
        return route_after_agent(state)
    if current is Node.TOOLS:
        return Node.AGENT
    return Node.END


async def call_model(state: ConversationState, ctx: AgentContext) -> ConversationState:
    """Agent node: system prompt + full history to the model (with backoff), append its reply."""
    prompt = build_system_prompt(ctx.clock())
    logger.info("[graph:agent] IN  messages=%d", len(state))

    async def _invoke():
        return await ctx.model.invoke(prompt, state.messages, AGENT_TOOLS)

    reply = await retry_with_backoff(_invoke, max_retries=ctx.max_retries, sleep=ctx.sleep)
    logger.info("[graph:agent] OUT tool_calls=%d content_len=%d", len(reply.tool_calls), len(reply.content))
    return state.append(reply)


async def call_tools(state: ConversationState, ctx: AgentContext) -> ConversationState:
    """Tools node: run the last ai message's tool calls, append one tool message per call."""
    results = await run_tool_calls(state.last, ctx)
    logger.info("[graph:tools] OUT results=%d", len(results))
    return state.append(*results)


NODES: dict[Node, Callable[[ConversationState, AgentContext], Awaitable[ConversationState]]] = {
    Node.AGENT: call_model,
    Node.TOOLS: call_tools,
}


async def run_graph(state: ConversationState, ctx: AgentContext) -> ConversationState:
    """Run from the agent node until END. Raises RecursionLimitExceededError past the step ceiling."""
    node = Node.AGENT
    steps = 0
    while node is not Node.END:
        steps += 1
        if steps > ctx.recursion_limit:
            logger.warning("[graph:run] recursion limit %d reached at node=%s", ctx.recursion_limit, node.value)
            raise RecursionLimitExceededError(ctx.recursion_limit)
        logger.info("[graph:run] step=%d node=%s", steps, node.value)
        state = await NODES[node](state, ctx)
        node = next_node(node, state)
    logger.info("[graph:run] END steps=%d messages=%d", steps, len(state))
    return state
