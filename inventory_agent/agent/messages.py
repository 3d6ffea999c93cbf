"""
Conversation data model: messages, tool calls, and the append-only conversation state.

Messages are frozen once built. ConversationState only grows by concatenation, and
every tool message must answer a tool call made by the nearest preceding ai message.
"""

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Role(str, Enum):
    HUMAN = "human"
    AI = "ai"
    TOOL = "tool"


class ToolCall(BaseModel):
    """A request, emitted by the model, to run a named tool with arguments."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _mint_missing_id(cls, value: Any) -> Any:
        # tool messages link back to their call by id
        if value is None or (isinstance(value, str) and not value.strip()):
            return f"call_{uuid.uuid4().hex}"
        return value


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None

    @model_validator(mode="after")
    def _check_role_fields(self) -> "Message":
        if self.tool_calls and self.role is not Role.AI:
            raise ValueError("tool_calls are only allowed on ai messages")
        if self.role is Role.TOOL and not self.tool_call_id:
            raise ValueError("tool messages require a tool_call_id")
        if self.tool_call_id is not None and self.role is not Role.TOOL:
            raise ValueError("tool_call_id is only allowed on tool messages")
        return self

    @classmethod
    def human(cls, content: str) -> "Message":
        return cls(role=Role.HUMAN, content=content)

    @classmethod
    def ai(cls, content: str = "", tool_calls: list[ToolCall] | tuple[ToolCall, ...] = ()) -> "Message":
        return cls(role=Role.AI, content=content, tool_calls=tuple(tool_calls))

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> "Message":
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id)


class ConversationState(BaseModel):
    """Ordered, append-only message history for one thread."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[Message, ...] = ()

    @model_validator(mode="after")
    def _check_tool_links(self) -> "ConversationState":
        open_calls: set[str] | None = None
        for i, m in enumerate(self.messages):
            if m.role is Role.AI:
                open_calls = {tc.id for tc in m.tool_calls}
            elif m.role is Role.TOOL and (open_calls is None or m.tool_call_id not in open_calls):
                raise ValueError(
                    f"tool message at position {i} references unknown tool_call_id {m.tool_call_id!r}"
                )
        return self

    def __len__(self) -> int:
        return len(self.messages)

    @property
    def last(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    def append(self, *messages: Message) -> "ConversationState":
        """Return a new state with messages added at the end."""
        return ConversationState(messages=self.messages + tuple(messages))

    def merge(self, other: "ConversationState") -> "ConversationState":
        """Concatenate two states in order. No deduplication, no reordering."""
        return ConversationState(messages=self.messages + other.messages)

    def to_records(self) -> list[dict[str, Any]]:
        """JSON-ready list of message dicts (checkpoint format)."""
        return [m.model_dump(mode="json") for m in self.messages]

    @classmethod
    def from_records(cls, records: list[dict[str, Any]]) -> "ConversationState":
        return cls.model_validate({"messages": records})
