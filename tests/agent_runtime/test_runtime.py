"""Unit tests for the model adapter (credentials, tool mapping, agent factory)."""

from __future__ import annotations

import pytest
from pydantic_ai.messages import ModelMessage, ModelRequest, ModelResponse, TextPart, ToolCallPart, ToolReturnPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from vibez.agent_runtime.context import ToolContext
from vibez.agent_runtime.execution.runtime import (
    ConfigurationError,
    api_key_configured,
    build_tools,
    check_model_credentials,
    create_coding_agent,
    provider_of,
    resolve_model_settings,
)
from vibez.agent_runtime.models.enums import ToolName
from vibez.agent_runtime.settings import VibezSettings
from vibez.agent_runtime.tools.registry import ToolRegistry

# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


def test_provider_of() -> None:
    assert provider_of("anthropic:claude-sonnet-4-5") == "anthropic"
    assert provider_of("openai:gpt-4o") == "openai"
    assert provider_of("test") is None


def test_missing_key_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    assert api_key_configured("anthropic:claude-sonnet-4-5") is False
    with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
        check_model_credentials("anthropic:claude-sonnet-4-5")


def test_present_key_passes(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    assert api_key_configured("openai:gpt-4o") is True
    check_model_credentials("openai:gpt-4o")


def test_keyless_provider() -> None:
    assert api_key_configured("test") is True


def test_create_agent_without_key(
    settings: VibezSettings, tool_registry: ToolRegistry, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    settings.model = "anthropic:claude-sonnet-4-5"

    with pytest.raises(ConfigurationError):
        create_coding_agent(settings, tool_registry)


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------


def test_resolve_model_settings(settings: VibezSettings) -> None:
    result = resolve_model_settings(settings)
    assert result["temperature"] == 0.2
    assert result["max_tokens"] == 4096


def test_build_tools(tool_registry: ToolRegistry) -> None:
    tools = build_tools(tool_registry)

    assert [t.name for t in tools] == [name.value for name in ToolName]
    assert all(t.takes_ctx for t in tools)


# ---------------------------------------------------------------------------
# Agent factory
# ---------------------------------------------------------------------------


async def test_agent_declares_tools_and_instructions(settings: VibezSettings, tool_registry: ToolRegistry) -> None:
    seen: dict[str, object] = {}

    def capture(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        seen["info"] = info
        seen["request"] = messages[-1]
        return ModelResponse(parts=[TextPart(content="ok")])

    agent = create_coding_agent(settings, tool_registry, model=FunctionModel(capture))
    result = await agent.run("hi", deps=ToolContext(user_id="alice"))

    assert result.output == "ok"
    info = seen["info"]
    declared = {tool.name: tool for tool in info.function_tools}
    assert set(declared) == {name.value for name in ToolName}
    assert "relativePath" in declared["read_file"].parameters_json_schema["properties"]
    assert info.model_settings is not None
    assert info.model_settings["temperature"] == 0.2
    request = seen["request"]
    assert isinstance(request, ModelRequest)
    assert request.instructions is not None
    assert "isolated workspace" in request.instructions


async def test_agent_tool_call_reaches_workspace(
    settings: VibezSettings, tool_registry: ToolRegistry
) -> None:
    def write_then_reply(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        returns = [p for p in messages[-1].parts if isinstance(p, ToolReturnPart)]
        if returns:
            return ModelResponse(parts=[TextPart(content=f"written={returns[0].content['success']}")])
        call = ToolCallPart(tool_name="write_file", args={"relativePath": "out.txt", "content": "from model"})
        return ModelResponse(parts=[call])

    agent = create_coding_agent(settings, tool_registry, model=FunctionModel(write_then_reply))
    result = await agent.run("write it", deps=ToolContext(user_id="alice"))

    assert result.output == "written=True"
    assert tool_registry.deps.resolver.resolve("alice", "out.txt").read_text() == "from model"
