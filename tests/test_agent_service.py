"""
Tests for run_agent_turn: checkpoint round trips, thread isolation and error classification.
"""

import json

import pytest

from conftest import (
    RED_SOFAS,
    FakeChatModel,
    FakeInventory,
    auth_error,
    lookup_call,
    permission_error,
    rate_limit_error,
)
from inventory_agent.agent.messages import Message, Role, ToolCall
from inventory_agent.core.checkpoint import InMemoryCheckpointStore
from inventory_agent.core.errors import (
    AgentFailedError,
    AuthFailedError,
    RateLimitedError,
    RecursionLimitExceededError,
    RetryExhaustedError,
    ServiceUnavailableError,
)
from inventory_agent.services.agent_service import (
    AUTH_MESSAGE,
    RATE_LIMIT_MESSAGE,
    classify_agent_error,
    run_agent_turn,
)


def _summarize_tool_result(messages: list[Message]) -> Message:
    """Answer built from the last tool result, the way the model would phrase it."""
    payload = json.loads(messages[-1].content)
    names = ", ".join(r["item"]["item_name"] for r in payload["results"])
    return Message.ai(f"We have {payload['count']} red sofas: {names}.")


class TestRunAgentTurn:
    @pytest.mark.asyncio
    async def test_red_sofa_lookup(self, make_context) -> None:
        model = FakeChatModel([lookup_call("red sofa", 5), _summarize_tool_result])
        inventory = FakeInventory(total=120, vector_hits=RED_SOFAS)
        ctx = make_context(model, inventory)

        reply = await run_agent_turn("thread-1", "Do you have any red sofas?", ctx)

        assert reply == "We have 3 red sofas: Harbor Sofa, Ember Loveseat, Ruby Sectional."
        assert inventory.vector_queries == [("red sofa", 5)]
        saved = await ctx.checkpoints.load("thread-1")
        assert [m.role for m in saved.messages] == [Role.HUMAN, Role.AI, Role.TOOL, Role.AI]

    @pytest.mark.asyncio
    async def test_second_turn_sees_prior_history(self, make_context) -> None:
        model = FakeChatModel([Message.ai("Hi! How can I help?"), Message.ai("Yes, we ship nationwide.")])
        ctx = make_context(model)

        await run_agent_turn("t", "Hello", ctx)
        reply = await run_agent_turn("t", "Do you deliver?", ctx)

        assert reply == "Yes, we ship nationwide."
        history = [(m.role, m.content) for m in model.calls[1]["messages"]]
        assert history == [
            (Role.HUMAN, "Hello"),
            (Role.AI, "Hi! How can I help?"),
            (Role.HUMAN, "Do you deliver?"),
        ]
        assert len(await ctx.checkpoints.load("t")) == 4

    @pytest.mark.asyncio
    async def test_threads_are_isolated(self, make_context) -> None:
        model = FakeChatModel([Message.ai("a1"), Message.ai("b1")])
        ctx = make_context(model)

        await run_agent_turn("a", "first thread", ctx)
        await run_agent_turn("b", "second thread", ctx)

        assert [m.content for m in model.calls[1]["messages"]] == ["second thread"]
        assert [m.content for m in (await ctx.checkpoints.load("a")).messages] == ["first thread", "a1"]

    @pytest.mark.asyncio
    async def test_failed_turn_saves_nothing(self, make_context) -> None:
        store = InMemoryCheckpointStore()
        model = FakeChatModel([Message.ai("hello"), RuntimeError("boom")])
        ctx = make_context(model, checkpoints=store)

        await run_agent_turn("t", "hi", ctx)
        with pytest.raises(AgentFailedError):
            await run_agent_turn("t", "again", ctx)

        assert [m.content for m in (await store.load("t")).messages] == ["hi", "hello"]

    @pytest.mark.asyncio
    async def test_rate_limit_exhaustion(self, make_context, sleeps) -> None:
        model = FakeChatModel(default=None, replies=[rate_limit_error() for _ in range(3)])
        ctx = make_context(model)

        with pytest.raises(RateLimitedError) as exc_info:
            await run_agent_turn("t", "hi", ctx)

        assert exc_info.value.message == RATE_LIMIT_MESSAGE
        assert isinstance(exc_info.value.__cause__, RetryExhaustedError)
        assert sleeps == [1.0, 2.0]
        assert len(model.calls) == 3
        assert len(await ctx.checkpoints.load("t")) == 0

    @pytest.mark.asyncio
    async def test_auth_failure_is_not_retried(self, make_context, sleeps) -> None:
        model = FakeChatModel([auth_error()])
        with pytest.raises(AuthFailedError) as exc_info:
            await run_agent_turn("t", "hi", make_context(model))
        assert exc_info.value.message == AUTH_MESSAGE
        assert len(model.calls) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_recursion_limit_is_reraised_and_not_saved(self, make_context) -> None:
        model = FakeChatModel(default=lookup_call("sofa"))
        ctx = make_context(model, FakeInventory(total=3, vector_hits=RED_SOFAS))

        with pytest.raises(RecursionLimitExceededError) as exc_info:
            await run_agent_turn("t", "sofa?", ctx)

        assert "Recursion limit of 15" in exc_info.value.message
        assert len(await ctx.checkpoints.load("t")) == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_message_does_not_leak(self, make_context) -> None:
        model = FakeChatModel([KeyError("sk-secret-api-key")])
        with pytest.raises(AgentFailedError) as exc_info:
            await run_agent_turn("t", "hi", make_context(model))
        assert exc_info.value.message == "Agent failed: KeyError"
        assert "sk-secret" not in str(exc_info.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("thread_id,message", [("", "hi"), ("t", ""), ("t", "   ")])
    async def test_empty_input_is_rejected(self, make_context, thread_id, message) -> None:
        model = FakeChatModel()
        with pytest.raises(ValueError):
            await run_agent_turn(thread_id, message, make_context(model))
        assert model.calls == []


class TestClassifyAgentError:
    def test_retry_exhausted_is_rate_limited(self) -> None:
        err = classify_agent_error(RetryExhaustedError("Max retries exceeded", attempts=3))
        assert isinstance(err, RateLimitedError)

    def test_raw_429_is_rate_limited(self) -> None:
        assert isinstance(classify_agent_error(rate_limit_error()), RateLimitedError)

    def test_401_is_auth(self) -> None:
        assert isinstance(classify_agent_error(auth_error()), AuthFailedError)

    def test_403_is_auth(self) -> None:
        err = classify_agent_error(permission_error())
        assert isinstance(err, AuthFailedError)
        assert err.message == AUTH_MESSAGE

    def test_misconfiguration_keeps_safe_message(self) -> None:
        err = classify_agent_error(ServiceUnavailableError("OPENAI_API_KEY must be set in .env"))
        assert isinstance(err, AgentFailedError)
        assert err.message == "Agent failed: OPENAI_API_KEY must be set in .env"

    def test_anything_else_is_generic(self) -> None:
        err = classify_agent_error(ZeroDivisionError("division by zero"))
        assert type(err) is AgentFailedError
        assert err.message == "Agent failed: ZeroDivisionError"


@pytest.mark.asyncio
async def test_tool_call_without_id_still_completes_turn(make_context) -> None:
    call = ToolCall(id="", name="item_lookup", arguments={"query": "sofa"})
    model = FakeChatModel([Message.ai("", [call]), Message.ai("ok")])
    ctx = make_context(model, FakeInventory(total=3, vector_hits=RED_SOFAS))

    assert await run_agent_turn("t", "sofa?", ctx) == "ok"

    saved = await ctx.checkpoints.load("t")
    minted = saved.messages[1].tool_calls[0].id
    assert minted.startswith("call_")
    assert saved.messages[2].tool_call_id == minted
