"""Unit tests for system prompt rendering."""

from __future__ import annotations

import jinja2
import pytest

from vibez.agent_runtime.execution.prompt import render_system_prompt
from vibez.agent_runtime.models.enums import ToolName
from vibez.agent_runtime.tools.registry import TOOL_SPECS

ALL_TOOLS = list(TOOL_SPECS.values())
NO_APPROVAL = [spec for spec in ALL_TOOLS if spec.name != ToolName.REQUEST_APPROVAL]


def test_default_prompt_lists_tools() -> None:
    result = render_system_prompt(ALL_TOOLS, model_name="test")

    for spec in ALL_TOOLS:
        assert f"- {spec.name.value}: {spec.description}" in result
    assert "{{" not in result
    assert "{%" not in result


def test_default_prompt_approval_section() -> None:
    with_approval = render_system_prompt(ALL_TOOLS, model_name="test")
    without_approval = render_system_prompt(NO_APPROVAL, model_name="test")

    assert "When to request approval" in with_approval
    assert "When to request approval" not in without_approval


def test_plain_string_passthrough() -> None:
    result = render_system_prompt(ALL_TOOLS, model_name="test", template="You are a helpful assistant.")
    assert result == "You are a helpful assistant."


def test_template_model_name() -> None:
    model = "anthropic:claude-sonnet-4-5"
    result = render_system_prompt(ALL_TOOLS, model_name=model, template="Using {{ model_name }}")
    assert result == "Using anthropic:claude-sonnet-4-5"


def test_template_tool_names() -> None:
    tools = [TOOL_SPECS[ToolName.READ_FILE], TOOL_SPECS[ToolName.LIST_FILES]]
    result = render_system_prompt(tools, model_name="test", template="Tools: {{ tool_names | join(', ') }}")
    assert result == "Tools: read_file, list_files"


def test_template_date() -> None:
    result = render_system_prompt(ALL_TOOLS, model_name="test", template="{{ date }}")
    assert len(result) == 10
    assert result[4] == "-"


def test_extra_vars_override() -> None:
    result = render_system_prompt(
        ALL_TOOLS,
        model_name="test",
        template="{{ model_name }} for {{ team }}",
        extra_vars={"model_name": "custom", "team": "platform"},
    )
    assert result == "custom for platform"


def test_undefined_variable_raises() -> None:
    with pytest.raises(jinja2.UndefinedError):
        render_system_prompt(ALL_TOOLS, model_name="test", template="Hello {{ nobody }}")
