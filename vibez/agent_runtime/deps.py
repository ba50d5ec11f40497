"""FastAPI dependency injection for the agent loop and conversations.

Usage in route handlers::

    @router.post("/agent/{user_id}/chat")
    async def chat(user_id: str, body: ChatRequest, loop: Loop) -> ChatResponse:
        ...

``get_agent_loop`` raises HTTP 503 if the agent could not be constructed at
startup (e.g. missing model API key).
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from vibez.agent_runtime.execution.coordinator import AgentLoop
from vibez.agent_runtime.managers.conversations import ConversationManager
from vibez.agent_runtime.registry import TurnRegistry
from vibez.agent_runtime.settings import VibezSettings


def get_agent_loop(request: Request) -> AgentLoop:
    loop: AgentLoop | None = request.app.state.agent_loop
    if loop is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Agent is not available. Check the model API key configuration.",
        )
    return loop


def get_conversations(request: Request) -> ConversationManager:
    return request.app.state.conversations


def get_app_settings(request: Request) -> VibezSettings:
    return request.app.state.settings


def get_turns(request: Request) -> TurnRegistry:
    return request.app.state.turns


# -- Annotated type aliases for concise route signatures ---------------------

Loop = Annotated[AgentLoop, Depends(get_agent_loop)]
"""Annotated dependency: the agent loop (503 when unavailable)."""

Conversations = Annotated[ConversationManager, Depends(get_conversations)]
"""Annotated dependency: conversation read / reset operations."""

Turns = Annotated[TurnRegistry, Depends(get_turns)]
"""Annotated dependency: in-process turn registry."""

Settings = Annotated[VibezSettings, Depends(get_app_settings)]
"""Annotated dependency: settings the app was started with."""
