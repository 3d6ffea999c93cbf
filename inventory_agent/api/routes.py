"""
API route aggregator: register endpoints and map agent errors to HTTP; no agent logic here.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException

from inventory_agent.agent.context import AgentContext
from inventory_agent.api.deps import get_agent_context
from inventory_agent.core.errors import AgentError, RateLimitedError
from inventory_agent.schemas.chat import ChatRequest, ChatResponse, ChatStartResponse
from inventory_agent.services.agent_service import run_agent_turn

logger = logging.getLogger(__name__)
router = APIRouter()


def new_thread_id() -> str:
    return uuid.uuid4().hex


async def _run_turn(thread_id: str, message: str, ctx: AgentContext) -> str:
    try:
        return await run_agent_turn(thread_id, message, ctx)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except RateLimitedError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    except AgentError as e:
        raise HTTPException(status_code=500, detail=e.message) from e


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Inventory agent server running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Chat ---

@router.post(
    "/chat",
    response_model=ChatStartResponse,
    tags=["chat"],
    summary="Start a conversation",
    description="Mint a new thread id, run the agent on the first message, return the thread id and reply. 503 on rate limits, 500 on agent failure.",
)
async def start_chat(body: ChatRequest, ctx: AgentContext = Depends(get_agent_context)) -> ChatStartResponse:
    thread_id = new_thread_id()
    logger.info("[api:start_chat] IN  thread_id=%s message=%r", thread_id, body.message)
    response = await _run_turn(thread_id, body.message, ctx)
    logger.info("[api:start_chat] OUT thread_id=%s response_len=%d", thread_id, len(response))
    return ChatStartResponse(thread_id=thread_id, response=response)


@router.post(
    "/chat/{thread_id}",
    response_model=ChatResponse,
    tags=["chat"],
    summary="Continue a conversation",
    description="Run the agent on an existing thread; prior messages are restored from the checkpoint store.",
)
async def continue_chat(
    thread_id: str,
    body: ChatRequest,
    ctx: AgentContext = Depends(get_agent_context),
) -> ChatResponse:
    logger.info("[api:continue_chat] IN  thread_id=%s message=%r", thread_id, body.message)
    response = await _run_turn(thread_id, body.message, ctx)
    logger.info("[api:continue_chat] OUT thread_id=%s response_len=%d", thread_id, len(response))
    return ChatResponse(response=response)
