"""
Agent LLM: OpenAI chat completions with tool calling.

Converts the conversation Message model to the OpenAI wire format and back. The client is
created with max_retries=0; rate limits are handled by agent.retry around each call.
"""

import json
import logging
from typing import Any, Sequence

from openai import AsyncOpenAI

from inventory_agent.agent.messages import Message, Role, ToolCall
from inventory_agent.core.config import (
    LLM_API_TIMEOUT,
    LLM_TEMPERATURE,
    OPENAI_API_KEY,
    OPENAI_LLM_MODEL,
)
from inventory_agent.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


def to_openai_messages(system_prompt: str, messages: Sequence[Message]) -> list[dict[str, Any]]:
    """System prompt followed by the full history, in chat-completions format."""
    out: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for m in messages:
        if m.role is Role.AI:
            entry: dict[str, Any] = {"role": "assistant", "content": m.content or ""}
            if m.tool_calls:
                entry["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                    }
                    for tc in m.tool_calls
                ]
            out.append(entry)
        elif m.role is Role.TOOL:
            out.append({"role": "tool", "tool_call_id": m.tool_call_id, "content": m.content})
        else:
            out.append({"role": "user", "content": m.content})
    return out


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        args = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        logger.warning("[llm] tool call arguments are not valid JSON: %r", raw)
        return {}
    return args if isinstance(args, dict) else {}


def from_openai_message(msg: Any) -> Message:
    """Build an ai Message from an OpenAI ChatCompletionMessage."""
    content = (getattr(msg, "content", None) or "").strip()
    tool_calls = []
    for tc in getattr(msg, "tool_calls", None) or []:
        fn = getattr(tc, "function", None)
        if not fn:
            continue
        tool_calls.append(ToolCall(
            id=getattr(tc, "id", None),
            name=getattr(fn, "name", None) or "",
            arguments=_parse_arguments(getattr(fn, "arguments", None)),
        ))
    return Message.ai(content, tool_calls)


class ChatModel:
    """OpenAI chat model. invoke() is one round trip: prompt + history in, one ai Message out."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        client: Any = None,
    ) -> None:
        self.model = model or OPENAI_LLM_MODEL
        self.temperature = LLM_TEMPERATURE if temperature is None else temperature
        self._api_key = OPENAI_API_KEY if api_key is None else api_key
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ServiceUnavailableError("OPENAI_API_KEY must be set in .env")
            self._client = AsyncOpenAI(api_key=self._api_key, timeout=LLM_API_TIMEOUT, max_retries=0)
        return self._client

    async def invoke(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: list[dict[str, Any]],
    ) -> Message:
        client = self._get_client()
        payload = to_openai_messages(system_prompt, messages)
        logger.info("[llm:invoke] IN  model=%s messages=%d tools=%s",
                    self.model, len(payload), [t["function"]["name"] for t in tools])
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": payload,
            "temperature": self.temperature,
        }
        if tools:
            kwargs["tools"] = tools
        response = await client.chat.completions.create(**kwargs)
        msg = response.choices[0].message if response.choices else None
        if msg is None:
            logger.warning("[llm:invoke] OUT no choices returned")
            return Message.ai("")
        reply = from_openai_message(msg)
        if reply.tool_calls:
            logger.info("[llm:invoke] OUT tool_calls=%s", [tc.name for tc in reply.tool_calls])
        else:
            logger.info("[llm:invoke] OUT content_len=%d", len(reply.content))
        return reply
