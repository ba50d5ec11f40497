"""API request / response schemas for the agent endpoints.

These thin schemas sit between HTTP and the agent loop.  Field names are
snake_case in Python and camelCase on the wire (``alias_generator``), so
clients written against the JSON API see ``clearHistory``,
``toolCallCount`` and so on.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vibez.agent_runtime.models.session import Message, UsageSummary


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatRequest(ApiModel):
    """Input for one chat turn."""

    message: str = Field(min_length=1)
    clear_history: bool = Field(default=False, description="Discard the conversation before this turn.")


class ChatResponse(ApiModel):
    success: bool = True
    reply: str
    tool_call_count: int
    conversation_length: int
    usage: UsageSummary = Field(default_factory=UsageSummary)
    duration_ms: int = 0


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class HistoryResponse(ApiModel):
    success: bool = True
    user_id: str
    messages: list[Message]
    count: int


class ClearHistoryResponse(ApiModel):
    success: bool = True
    message: str


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


class StatusResponse(ApiModel):
    """Agent availability and load."""

    success: bool = True
    agent_available: bool
    active_conversations: int
    active_turns: int
    api_key_configured: bool
    model: str


class ErrorResponse(ApiModel):
    success: bool = False
    error: str
