"""
Per-application context handed to every agent turn: model client, inventory collection and
checkpoint store, plus the loop limits. Built once at startup; tests pass their own.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol, Sequence

from inventory_agent.agent.llm import ChatModel
from inventory_agent.agent.messages import Message
from inventory_agent.core.checkpoint import CheckpointStore, create_checkpoint_store
from inventory_agent.core.config import MAX_RETRIES, RECURSION_LIMIT
from inventory_agent.services.search_service import InventoryCollection
from inventory_agent.services.vector_store import MilvusInventory


class LanguageModel(Protocol):
    async def invoke(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: list[dict[str, Any]],
    ) -> Message: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AgentContext:
    model: LanguageModel
    inventory: InventoryCollection
    checkpoints: CheckpointStore
    recursion_limit: int = RECURSION_LIMIT
    max_retries: int = MAX_RETRIES
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)
    clock: Callable[[], datetime] = field(default=_utc_now)


def build_default_context() -> AgentContext:
    """Context wired to OpenAI, Milvus and the configured checkpoint backend. Connects lazily."""
    return AgentContext(
        model=ChatModel(),
        inventory=MilvusInventory(),
        checkpoints=create_checkpoint_store(),
    )
