"""Schemas for the chat endpoints."""

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Request body for POST /chat and POST /chat/{thread_id}. History is stored server-side per thread."""

    message: str = Field(..., min_length=1, description="User message for the agent.")


class ChatStartResponse(BaseModel):
    """Response for POST /chat: the new thread id plus the agent's reply."""

    thread_id: str = Field(..., alias="threadId", description="Thread id to continue this conversation.")
    response: str = Field(..., description="Final answer from the agent.")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [{"threadId": "3f2b9c0e8d4a4f52a1c7e0b6d9f81234", "response": "We have 3 red sofas in stock..."}]
        }
    }


class ChatResponse(BaseModel):
    """Response for POST /chat/{thread_id}."""

    response: str = Field(..., description="Final answer from the agent.")
