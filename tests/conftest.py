"""Shared test fixtures: settings, workspace resolver and tool registry.

Every test gets its own workspaces root and data root under ``tmp_path``,
so no test sees another test's files.  Scripts run with the interpreter that
runs the tests (``sys.executable``) rather than whatever ``python3`` is on
``PATH``.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator

import pytest

from vibez.agent_runtime.context import ToolContext
from vibez.agent_runtime.execution.approval import ApprovalGate
from vibez.agent_runtime.execution.sandbox import ProcessSandbox
from vibez.agent_runtime.execution.workspace import WorkspaceResolver
from vibez.agent_runtime.settings import VibezSettings, _get_settings_cached
from vibez.agent_runtime.tools.base import ToolDeps
from vibez.agent_runtime.tools.registry import ToolRegistry


@pytest.fixture(autouse=True)
def _fresh_settings_cache() -> Iterator[None]:
    """Invalidate the cached settings around every test."""
    _get_settings_cached.cache_clear()
    yield
    _get_settings_cached.cache_clear()


@pytest.fixture
def settings(tmp_path) -> VibezSettings:
    return VibezSettings(
        _env_file=None,
        workspaces_root=str(tmp_path / "workspaces"),
        data_root=str(tmp_path / "data"),
        python_executable=sys.executable,
        model="test",
    )


@pytest.fixture
def resolver(settings: VibezSettings) -> WorkspaceResolver:
    return WorkspaceResolver(settings.workspaces_root)


@pytest.fixture
def tool_deps(settings: VibezSettings, resolver: WorkspaceResolver) -> ToolDeps:
    """Tool dependencies with an unconfigured approval gate."""
    return ToolDeps(
        resolver=resolver,
        sandbox=ProcessSandbox(max_output_bytes=settings.max_output_bytes),
        approvals=ApprovalGate(None, None),
        settings=settings,
    )


@pytest.fixture
def tool_registry(tool_deps: ToolDeps) -> ToolRegistry:
    return ToolRegistry(tool_deps)


@pytest.fixture
def alice() -> ToolContext:
    return ToolContext(user_id="alice")


@pytest.fixture
def bob() -> ToolContext:
    return ToolContext(user_id="bob")
