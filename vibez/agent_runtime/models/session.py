"""Conversation and turn data models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from vibez.agent_runtime.models.enums import MessageRole

# -- Run summary -------------------------------------------------------------


class UsageSummary(BaseModel):
    total_tokens: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    model_requests: int = 0


class RunSummary(BaseModel):
    duration_ms: int = 0
    usage: UsageSummary = Field(default_factory=UsageSummary)


# -- Conversation ------------------------------------------------------------


class Message(BaseModel):
    """One entry of a user's conversation log."""

    role: MessageRole
    content: str


class ConversationLog(BaseModel):
    """Serialized form of one user's session (local session store)."""

    user_id: str
    messages: list[Message] = Field(default_factory=list)
