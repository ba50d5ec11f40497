"""Tool declarations: the dependency bundle and the spec of one tool kind."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from vibez.agent_runtime.context import ToolContext
from vibez.agent_runtime.execution.approval import ApprovalGate
from vibez.agent_runtime.execution.sandbox import ProcessSandbox
from vibez.agent_runtime.execution.workspace import WorkspaceResolver
from vibez.agent_runtime.locks import KeyedLock
from vibez.agent_runtime.models.enums import ToolName
from vibez.agent_runtime.models.tools import ToolResult
from vibez.agent_runtime.settings import VibezSettings


@dataclass
class ToolDeps:
    """Everything a tool handler may touch, passed explicitly."""

    resolver: WorkspaceResolver
    sandbox: ProcessSandbox
    approvals: ApprovalGate
    settings: VibezSettings
    clone_locks: KeyedLock = field(default_factory=KeyedLock)
    """Serialises the exists-check and clone for one (user, folder)."""


Handler = Callable[[ToolDeps, ToolContext, Any], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolSpec:
    """One entry of the dispatch table."""

    name: ToolName
    description: str
    params: type[BaseModel]
    handler: Handler

    def json_schema(self) -> dict[str, Any]:
        """Parameter schema declared to the model (camelCase aliases)."""
        schema = self.params.model_json_schema(by_alias=True)
        schema.pop("title", None)
        return schema
