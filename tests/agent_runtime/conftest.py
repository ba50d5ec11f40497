"""Shared fixtures for agent-runtime HTTP and turn tests."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic_ai.messages import ModelMessage, ModelRequest, ModelResponse, TextPart, UserPromptPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from vibez.agent_runtime.app import app
from vibez.agent_runtime.execution.coordinator import AgentLoop
from vibez.agent_runtime.execution.runtime import create_coding_agent
from vibez.agent_runtime.managers.conversations import ConversationManager
from vibez.agent_runtime.registry import TurnRegistry
from vibez.agent_runtime.settings import VibezSettings
from vibez.agent_runtime.store.memory import MemorySessionStore
from vibez.agent_runtime.tools.registry import ToolRegistry


def last_user_prompt(messages: list[ModelMessage]) -> str:
    """Text of the most recent user prompt in *messages*."""
    for message in reversed(messages):
        if isinstance(message, ModelRequest):
            for part in message.parts:
                if isinstance(part, UserPromptPart) and isinstance(part.content, str):
                    return part.content
    return ""


def echo(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
    """Model stand-in that answers ``echo: <prompt>`` without calling tools."""
    return ModelResponse(parts=[TextPart(content=f"echo: {last_user_prompt(messages)}")])


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def turns() -> TurnRegistry:
    return TurnRegistry()


@pytest.fixture
def echo_loop(
    settings: VibezSettings,
    tool_registry: ToolRegistry,
    store: MemorySessionStore,
    turns: TurnRegistry,
) -> AgentLoop:
    agent = create_coding_agent(settings, tool_registry, model=FunctionModel(echo))
    return AgentLoop(agent, store, turns, settings)


@pytest.fixture
async def client(
    settings: VibezSettings,
    store: MemorySessionStore,
    turns: TurnRegistry,
    echo_loop: AgentLoop,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with an echo agent.

    The app lifespan does NOT run under ``ASGITransport``, so state fields
    are pre-set here.
    """
    app.state.settings = settings
    app.state.turns = turns
    app.state.conversations = ConversationManager(store, turns)
    app.state.agent_loop = echo_loop

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
