"""Tool registry -- the dispatch table between the model and the handlers.

``TOOL_SPECS`` maps every ``ToolName`` to its ``ToolSpec`` (description,
parameter model, handler).  ``ToolRegistry`` binds that table to explicit
dependencies and is the single place where tool calls are validated and
where handler exceptions become ``ToolResult`` failures:

=========================  ==================
exception                  ``error_kind``
=========================  ==================
``ValidationError``        ``validation``
``SecurityError``          ``security``
``SandboxTimeoutError``    ``timeout``
``ProcessError``           ``process``
``SubmissionError``        ``submission``
``OSError``                ``io``
=========================  ==================

Nothing but cancellation propagates out of ``invoke``; a tool failure is
something the agent reports to the user, not a reason to abort the turn.
Results are never retried.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from vibez.agent_runtime.execution.approval import SubmissionError
from vibez.agent_runtime.execution.sandbox import ProcessError, SandboxTimeoutError
from vibez.agent_runtime.execution.workspace import SecurityError
from vibez.agent_runtime.log import log_security_event
from vibez.agent_runtime.models.enums import ToolErrorKind, ToolName
from vibez.agent_runtime.models.tools import (
    DeleteFileParams,
    GitCloneParams,
    GitCommandParams,
    GitConfigParams,
    ListFilesParams,
    ReadFileParams,
    RequestApprovalParams,
    RunScriptParams,
    ToolResult,
    WriteFileParams,
)
from vibez.agent_runtime.tools import approval, files, git, scripts
from vibez.agent_runtime.tools.base import ToolSpec

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from vibez.agent_runtime.context import ToolContext
    from vibez.agent_runtime.tools.base import ToolDeps

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dispatch table
# ---------------------------------------------------------------------------

TOOL_SPECS: dict[ToolName, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            ToolName.READ_FILE,
            "Read a text file from the user workspace",
            ReadFileParams,
            files.read_file,
        ),
        ToolSpec(
            ToolName.WRITE_FILE,
            "Write (create or overwrite) a text file in the user workspace; parent folders are created",
            WriteFileParams,
            files.write_file,
        ),
        ToolSpec(
            ToolName.LIST_FILES,
            "List files and directories in the workspace (defaults to the workspace root)",
            ListFilesParams,
            files.list_files,
        ),
        ToolSpec(
            ToolName.DELETE_FILE,
            "Delete a file from the workspace",
            DeleteFileParams,
            files.delete_file,
        ),
        ToolSpec(
            ToolName.RUN_NODE,
            "Execute a Node.js script from the workspace and return stdout/stderr and the exit code",
            RunScriptParams,
            scripts.run_node,
        ),
        ToolSpec(
            ToolName.RUN_PYTHON,
            "Execute a Python script from the workspace and return stdout/stderr and the exit code",
            RunScriptParams,
            scripts.run_python,
        ),
        ToolSpec(
            ToolName.GIT_CONFIG,
            "Set the git author name and email used for commits in this workspace",
            GitConfigParams,
            git.git_config,
        ),
        ToolSpec(
            ToolName.GIT_CLONE,
            "Clone a remote git repository into a new folder of the workspace",
            GitCloneParams,
            git.git_clone,
        ),
        ToolSpec(
            ToolName.GIT_COMMAND,
            'Run a git subcommand (e.g. "status", "add -A", "commit -m msg") inside a workspace folder',
            GitCommandParams,
            git.git_command,
        ),
        ToolSpec(
            ToolName.REQUEST_APPROVAL,
            (
                "Request approval from the user before a critical action such as deleting several files, "
                "running destructive commands or deploying code. Returns immediately with a request id; "
                "it does not wait for the decision."
            ),
            RequestApprovalParams,
            approval.request_approval,
        ),
    )
}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ToolRegistry:
    """Validates and dispatches tool calls on behalf of a user.

    Parameters
    ----------
    deps:
        Resolver, sandbox, approval gate and settings shared by all handlers.
    enabled:
        Optional subset of tools to expose; all of ``TOOL_SPECS`` by default.
    """

    def __init__(self, deps: ToolDeps, *, enabled: Iterable[ToolName] | None = None) -> None:
        self.deps = deps
        names = list(enabled) if enabled is not None else list(TOOL_SPECS)
        self._specs = {name: TOOL_SPECS[name] for name in names}

    def specs(self) -> list[ToolSpec]:
        return list(self._specs.values())

    def names(self) -> list[str]:
        return [name.value for name in self._specs]

    def get(self, name: str) -> ToolSpec | None:
        try:
            return self._specs.get(ToolName(name))
        except ValueError:
            return None

    async def invoke(self, name: str, arguments: Mapping[str, Any] | None, ctx: ToolContext) -> ToolResult:
        """Run tool *name* once with *arguments* for ``ctx.user_id``."""
        spec = self.get(name)
        if spec is None:
            return ToolResult.fail(ToolErrorKind.UNKNOWN_TOOL, f"Unknown tool: {name}")

        try:
            params = spec.params.model_validate(dict(arguments or {}))
        except ValidationError as exc:
            return ToolResult.fail(ToolErrorKind.VALIDATION, _format_validation_error(exc))

        logger.debug("Tool %s invoked by user %s", spec.name, ctx.user_id)
        try:
            result = await spec.handler(self.deps, ctx, params)
        except SecurityError as exc:
            log_security_event(ctx.user_id, spec.name.value, f"{exc} (input={exc.path!r})")
            return ToolResult.fail(ToolErrorKind.SECURITY, str(exc))
        except SandboxTimeoutError as exc:
            return ToolResult.fail(ToolErrorKind.TIMEOUT, str(exc), timeoutMs=int(exc.timeout * 1000))
        except ProcessError as exc:
            return ToolResult.fail(ToolErrorKind.PROCESS, str(exc))
        except SubmissionError as exc:
            logger.warning("Approval submission failed for user %s: %s (%s)", ctx.user_id, exc, exc.kind)
            return ToolResult.fail(
                ToolErrorKind.SUBMISSION,
                f"Failed to submit approval request: {exc}",
                submissionError=exc.kind.value,
            )
        except UnicodeDecodeError:
            return ToolResult.fail(ToolErrorKind.IO, "File is not valid UTF-8 text")
        except ValueError as exc:
            return ToolResult.fail(ToolErrorKind.VALIDATION, str(exc))
        except OSError as exc:
            return ToolResult.fail(ToolErrorKind.IO, self._format_os_error(exc, ctx.user_id))

        if not result.success:
            logger.debug("Tool %s for user %s reported failure: %s", spec.name, ctx.user_id, result.error)
        return result

    def _format_os_error(self, exc: OSError, user_id: str) -> str:
        """Describe *exc* without leaking host paths outside the workspace."""
        message = exc.strerror or str(exc)
        if exc.filename:
            try:
                shown = self.deps.resolver.relative_to_root(user_id, Path(exc.filename))
            except ValueError:
                shown = Path(exc.filename).name
            message = f"{message}: {shown}"
        return message


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        where = ".".join(str(part) for part in err["loc"]) or "arguments"
        problems.append(f"{where}: {err['msg']}")
    return "Invalid arguments: " + "; ".join(problems)
