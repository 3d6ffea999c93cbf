"""
Agent: run one conversational turn for a thread.

Responsibility: Load the thread's checkpoint, append the user's message, run the agent
loop to completion, save the new state and return the reply. Called by the API; no HTTP
here. A failed turn saves nothing, and faults leave as user-facing AgentError subclasses.
"""

import logging

from inventory_agent.agent.context import AgentContext
from inventory_agent.agent.graph import run_graph
from inventory_agent.agent.messages import Message
from inventory_agent.agent.retry import is_rate_limit, status_code_of
from inventory_agent.core.errors import (
    AgentError,
    AgentFailedError,
    AuthFailedError,
    RateLimitedError,
    RecursionLimitExceededError,
    RetryExhaustedError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Service temporarily unavailable due to rate limits. Please try again in a minute."
AUTH_MESSAGE = "Authentication failed. Please check your API configuration."


def classify_agent_error(exc: Exception) -> AgentError:
    """Map any fault from a turn to the error surfaced to callers. Never embeds foreign messages."""
    if isinstance(exc, RetryExhaustedError) or is_rate_limit(exc):
        return RateLimitedError(RATE_LIMIT_MESSAGE)
    if isinstance(exc, AuthFailedError) or status_code_of(exc) in (401, 403):
        return AuthFailedError(AUTH_MESSAGE)
    if isinstance(exc, (AgentError, ServiceUnavailableError)):
        return AgentFailedError(f"Agent failed: {exc.message}")
    return AgentFailedError(f"Agent failed: {type(exc).__name__}")


async def run_agent_turn(thread_id: str, user_message: str, ctx: AgentContext) -> str:
    """
    Run the agent for one user message on thread_id and return the final reply text.
    Raises ValueError on empty input, RecursionLimitExceededError if the loop does not
    settle, and RateLimitedError / AuthFailedError / AgentFailedError for everything else.
    """
    if not thread_id or not str(thread_id).strip():
        raise ValueError("thread_id is required")
    if not user_message or not str(user_message).strip():
        raise ValueError("message is required")
    logger.info("[agent_service:run_agent_turn] START thread_id=%s message=%r", thread_id[:16], user_message)

    try:
        prior = await ctx.checkpoints.load(thread_id)
        state = prior.append(Message.human(user_message))
        final = await run_graph(state, ctx)
        await ctx.checkpoints.save(thread_id, final)
    except RecursionLimitExceededError:
        logger.error("[agent_service:run_agent_turn] thread_id=%s aborted: recursion limit", thread_id[:16])
        raise
    except Exception as e:
        logger.exception("[agent_service:run_agent_turn] thread_id=%s failed", thread_id[:16])
        raise classify_agent_error(e) from e

    response = final.last.content if final.last is not None else ""
    logger.info("[agent_service:run_agent_turn] END thread_id=%s messages=%d response_len=%d",
                thread_id[:16], len(final), len(response))
    return response
