"""Script runners: execute a workspace file with node or python."""

from __future__ import annotations

import errno
from typing import TYPE_CHECKING

from vibez.agent_runtime.execution.sandbox import workspace_env
from vibez.agent_runtime.models.enums import ToolErrorKind
from vibez.agent_runtime.models.tools import RunScriptParams, ToolResult

if TYPE_CHECKING:
    from vibez.agent_runtime.context import ToolContext
    from vibez.agent_runtime.tools.base import ToolDeps


async def _run_script(deps: ToolDeps, ctx: ToolContext, params: RunScriptParams, interpreter: str) -> ToolResult:
    path = deps.resolver.resolve(ctx.user_id, params.relative_path)
    if not path.is_file():
        raise FileNotFoundError(errno.ENOENT, "No such file", str(path))

    root = deps.resolver.root_for(ctx.user_id)
    output = await deps.sandbox.run(
        [interpreter, str(path)],
        cwd=root,
        timeout=params.timeout_ms / 1000,
        env=workspace_env(root),
    )
    data = {
        "stdout": output.stdout,
        "stderr": output.stderr,
        "exitCode": output.exit_code,
        "durationMs": output.duration_ms,
        "truncated": output.truncated,
    }
    if output.ok:
        return ToolResult.ok(**data)
    return ToolResult.fail(ToolErrorKind.PROCESS, f"Script exited with code {output.exit_code}", **data)


async def run_node(deps: ToolDeps, ctx: ToolContext, params: RunScriptParams) -> ToolResult:
    return await _run_script(deps, ctx, params, deps.settings.node_executable)


async def run_python(deps: ToolDeps, ctx: ToolContext, params: RunScriptParams) -> ToolResult:
    return await _run_script(deps, ctx, params, deps.settings.python_executable)
