"""Tool parameter and result models.

Parameter models are what the language model sees: their JSON schema (with
camelCase aliases, e.g. ``relativePath``) is declared to the model, and the
arguments it sends back are validated against them before any handler runs.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vibez.agent_runtime.models.enums import ToolErrorKind

DEFAULT_SCRIPT_TIMEOUT_MS = 30_000
MAX_SCRIPT_TIMEOUT_MS = 600_000


class ToolParams(BaseModel):
    """Base for tool parameter models (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


# -- Files -------------------------------------------------------------------


class ReadFileParams(ToolParams):
    relative_path: str = Field(description="Path relative to workspace root, e.g. src/index.js")


class WriteFileParams(ToolParams):
    relative_path: str = Field(description="Path relative to workspace root")
    content: str = Field(description="Content to write to the file")


class ListFilesParams(ToolParams):
    relative_path: str = Field(default=".", description="Directory path relative to workspace root")


class DeleteFileParams(ToolParams):
    relative_path: str = Field(description="Path to the file to delete")


# -- Scripts -----------------------------------------------------------------


class RunScriptParams(ToolParams):
    relative_path: str = Field(description="Path to the script to execute, relative to workspace root")
    timeout_ms: int = Field(
        default=DEFAULT_SCRIPT_TIMEOUT_MS,
        gt=0,
        le=MAX_SCRIPT_TIMEOUT_MS,
        description="Timeout in milliseconds (default 30s)",
    )


# -- Git ---------------------------------------------------------------------


class GitConfigParams(ToolParams):
    name: str = Field(min_length=1, description="Author name for commits in this workspace")
    email: str = Field(min_length=3, description="Author email for commits in this workspace")


class GitCloneParams(ToolParams):
    repo_url: str = Field(min_length=1, description="Repository URL (https, ssh or git@host:path)")
    folder_name: str = Field(min_length=1, description="Target folder, relative to workspace root")
    branch: str | None = Field(default=None, description="Optional branch or tag to check out")


class GitCommandParams(ToolParams):
    command: str = Field(min_length=1, description='Git subcommand and arguments, e.g. "status -sb"')
    folder_path: str = Field(default=".", description="Repository folder, relative to workspace root")


# -- Approval ----------------------------------------------------------------


class RequestApprovalParams(ToolParams):
    title: str = Field(
        min_length=1,
        description='Short title describing what needs approval (e.g. "Delete 10 files")',
    )
    description: str = Field(description="Detailed description of the action and why approval is needed")
    code_snippet: str | None = Field(default=None, description="Optional code or command that will be executed")
    metadata: dict[str, Any] | None = Field(default=None, description="Optional additional metadata")


# -- Result ------------------------------------------------------------------


class ToolResult(BaseModel):
    """Structured outcome of exactly one tool invocation."""

    success: bool
    data: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    error_kind: ToolErrorKind | None = None

    @classmethod
    def ok(cls, **data: Any) -> ToolResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ToolErrorKind, error: str, **data: Any) -> ToolResult:
        return cls(success=False, error=error, error_kind=kind, data=data)

    def to_payload(self) -> dict[str, Any]:
        """Flat dict handed back to the model: ``{"success": ..., **data}``."""
        payload: dict[str, Any] = {"success": self.success, **self.data}
        if not self.success:
            payload["error"] = self.error
            if self.error_kind is not None:
                payload["errorKind"] = self.error_kind.value
        return payload
