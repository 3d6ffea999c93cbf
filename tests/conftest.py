"""
Shared test doubles and fixtures.

No network: the model, inventory collection and sleep are fakes; checkpoints use the
in-memory store (or SQLite under tmp_path in test_checkpoint.py).
"""

from datetime import datetime, timezone
from typing import Any, Callable

import httpx
import openai
import pytest

from inventory_agent.agent.context import AgentContext
from inventory_agent.agent.messages import Message, ToolCall
from inventory_agent.core.checkpoint import InMemoryCheckpointStore

FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

_OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def rate_limit_error() -> openai.RateLimitError:
    return openai.RateLimitError(
        "Rate limit reached",
        response=httpx.Response(429, request=_OPENAI_REQUEST),
        body=None,
    )


def auth_error() -> openai.AuthenticationError:
    return openai.AuthenticationError(
        "Incorrect API key provided",
        response=httpx.Response(401, request=_OPENAI_REQUEST),
        body=None,
    )


def permission_error() -> openai.PermissionDeniedError:
    return openai.PermissionDeniedError(
        "Project does not have access to model",
        response=httpx.Response(403, request=_OPENAI_REQUEST),
        body=None,
    )


def lookup_call(query: str, n: int | None = None, call_id: str = "call_1") -> Message:
    """ai message asking for one item_lookup."""
    arguments: dict[str, Any] = {"query": query}
    if n is not None:
        arguments["n"] = n
    return Message.ai("", [ToolCall(id=call_id, name="item_lookup", arguments=arguments)])


class FakeChatModel:
    """
    Scripted model. Each reply is a Message, an exception to raise, or a callable taking the
    history and returning a Message. Every invocation is recorded in .calls.
    """

    def __init__(self, replies: list[Any] | None = None, default: Message | None = None) -> None:
        self.replies = list(replies or [])
        self.default = default
        self.calls: list[dict[str, Any]] = []

    async def invoke(self, system_prompt, messages, tools) -> Message:
        self.calls.append({"system_prompt": system_prompt, "messages": list(messages), "tools": tools})
        if self.replies:
            reply = self.replies.pop(0)
        elif self.default is not None:
            reply = self.default
        else:
            raise AssertionError("FakeChatModel ran out of scripted replies")
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(list(messages))
        return reply


class FakeInventory:
    def __init__(
        self,
        total: int = 0,
        vector_hits: list[tuple[dict, float]] | None = None,
        text_hits: list[dict] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.total = total
        self.vector_hits = vector_hits or []
        self.text_hits = text_hits or []
        self.error = error
        self.vector_queries: list[tuple[str, int]] = []
        self.text_queries: list[tuple[str, int]] = []

    async def count(self) -> int:
        return self.total

    async def similarity_search_with_score(self, query: str, k: int):
        self.vector_queries.append((query, k))
        if self.error is not None:
            raise self.error
        return self.vector_hits[:k]

    async def text_search(self, query: str, limit: int):
        self.text_queries.append((query, limit))
        return self.text_hits[:limit]


RED_SOFAS = [
    ({"item_id": "F-001", "item_name": "Harbor Sofa", "categories": ["sofa"]}, 0.91),
    ({"item_id": "F-007", "item_name": "Ember Loveseat", "categories": ["sofa"]}, 0.87),
    ({"item_id": "F-012", "item_name": "Ruby Sectional", "categories": ["sofa", "sectional"]}, 0.82),
]


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable:
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
def make_context(fake_sleep) -> Callable[..., AgentContext]:
    def _make(model: FakeChatModel, inventory: FakeInventory | None = None, **kwargs: Any) -> AgentContext:
        return AgentContext(
            model=model,
            inventory=inventory if inventory is not None else FakeInventory(),
            checkpoints=kwargs.pop("checkpoints", None) or InMemoryCheckpointStore(),
            sleep=fake_sleep,
            clock=lambda: FIXED_NOW,
            **kwargs,
        )

    return _make
