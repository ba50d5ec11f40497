"""Git tools: identity, clone and arbitrary subcommands inside a workspace.

All git processes run through the sandbox with the workspace environment
(``HOME`` and ``GIT_CONFIG_GLOBAL`` inside the workspace), so ``git config
--global`` only ever affects the calling user.

Arguments are passed as an argv list -- never through a shell -- and the
inputs that could redirect git outside the workspace are refused:

- clone URLs that look like options, local paths, ``file:`` URLs or the
  ``ext::`` remote helper;
- global options given before the subcommand (``-C``, ``--git-dir``,
  ``--work-tree``, ``-c`` ...) in ``git_command``;
- path-like arguments and option values in ``git_command`` that do not
  resolve inside the workspace (``init ../bob/x``, ``diff --output=/tmp/x``).
"""

from __future__ import annotations

import posixpath
import re
import shlex
from typing import TYPE_CHECKING

from vibez.agent_runtime.execution.sandbox import ProcessOutput, workspace_env
from vibez.agent_runtime.execution.workspace import SecurityError
from vibez.agent_runtime.models.enums import ToolErrorKind
from vibez.agent_runtime.models.tools import (
    GitCloneParams,
    GitCommandParams,
    GitConfigParams,
    ToolResult,
)

if TYPE_CHECKING:
    from pathlib import Path

    from vibez.agent_runtime.context import ToolContext
    from vibez.agent_runtime.tools.base import ToolDeps

_REMOTE_URL = re.compile(r"^(?:https?|ssh|git)://[^/\s]+", re.IGNORECASE)
_SCP_LIKE = re.compile(r"^[\w.-]+@[\w.-]+:[^\s]+$")


def _output_data(output: ProcessOutput) -> dict[str, object]:
    return {
        "stdout": output.stdout,
        "stderr": output.stderr,
        "exitCode": output.exit_code,
        "truncated": output.truncated,
    }


def check_repo_url(url: str, user_id: str) -> str:
    """Return *url* if it names a remote repository, else raise ``SecurityError``."""
    url = url.strip()
    if url.startswith("-"):
        raise SecurityError("Invalid repository URL: looks like a command-line option", user_id=user_id, path=url)
    if _REMOTE_URL.match(url) or _SCP_LIKE.match(url):
        return url
    raise SecurityError(
        "Invalid repository URL: only remote https, ssh or git URLs can be cloned",
        user_id=user_id,
        path=url,
    )


def split_git_command(command: str, user_id: str) -> list[str]:
    """Split *command* into git arguments, dropping a leading ``git``.

    Raises ``ValueError`` for an empty or unparsable command and
    ``SecurityError`` when it starts with a global option instead of a
    subcommand.
    """
    args = shlex.split(command)
    if args and args[0] == "git":
        args = args[1:]
    if not args:
        msg = "Git command is empty"
        raise ValueError(msg)
    if args[0].startswith("-"):
        raise SecurityError(
            f"Git global option {args[0]!r} is not allowed; run a subcommand in folderPath instead",
            user_id=user_id,
            path=command,
        )
    return args


def _argument_value(arg: str) -> str | None:
    """The part of *arg* git may treat as a path, or ``None`` for a bare option."""
    if arg.startswith("--"):
        _, sep, value = arg.partition("=")
        return value if sep else None
    if arg.startswith("-"):
        return arg[2:] or None
    return arg


def check_path_arguments(deps: ToolDeps, user_id: str, folder_path: str, args: list[str]) -> None:
    """Resolve every argument of a git subcommand relative to *folder_path*.

    Raises ``SecurityError`` when an argument or ``--opt=value`` value is
    absolute or climbs out of the workspace.
    """
    for arg in args[1:]:
        value = _argument_value(arg)
        if value:
            deps.resolver.resolve(user_id, posixpath.join(folder_path, value))


async def _git(deps: ToolDeps, root: Path, args: list[str], *, cwd: Path) -> ProcessOutput:
    return await deps.sandbox.run(
        ["git", *args],
        cwd=cwd,
        timeout=deps.settings.git_timeout,
        env=workspace_env(root),
    )


async def git_config(deps: ToolDeps, ctx: ToolContext, params: GitConfigParams) -> ToolResult:
    root = deps.resolver.root_for(ctx.user_id)
    for key, value in (("user.name", params.name), ("user.email", params.email)):
        output = await _git(deps, root, ["config", "--global", key, value], cwd=root)
        if not output.ok:
            return ToolResult.fail(ToolErrorKind.PROCESS, f"git config {key} failed", **_output_data(output))
    return ToolResult.ok(name=params.name, email=params.email)


async def git_clone(deps: ToolDeps, ctx: ToolContext, params: GitCloneParams) -> ToolResult:
    target = deps.resolver.resolve(ctx.user_id, params.folder_name)
    root = deps.resolver.root_for(ctx.user_id)
    if target == root:
        raise SecurityError("Clone target must be a folder inside the workspace", user_id=ctx.user_id)
    url = check_repo_url(params.repo_url, ctx.user_id)
    folder = deps.resolver.relative_to_root(ctx.user_id, target)

    async with deps.clone_locks.hold((ctx.user_id, folder)):
        if target.exists():
            return ToolResult.fail(
                ToolErrorKind.ALREADY_EXISTS,
                f"Folder '{folder}' already exists",
                folder=folder,
            )

        args = ["clone"]
        if params.branch:
            args += ["--branch", params.branch]
        args += ["--", url, str(target)]
        output = await _git(deps, root, args, cwd=root)

    if not output.ok:
        return ToolResult.fail(
            ToolErrorKind.PROCESS,
            f"git clone exited with code {output.exit_code}",
            **_output_data(output),
        )
    return ToolResult.ok(folder=folder, repoUrl=url, branch=params.branch, **_output_data(output))


async def git_command(deps: ToolDeps, ctx: ToolContext, params: GitCommandParams) -> ToolResult:
    folder = deps.resolver.resolve(ctx.user_id, params.folder_path)
    args = split_git_command(params.command, ctx.user_id)
    check_path_arguments(deps, ctx.user_id, params.folder_path or ".", args)
    if not folder.is_dir():
        return ToolResult.fail(
            ToolErrorKind.NOT_FOUND,
            f"Folder '{params.folder_path}' does not exist",
            folderPath=params.folder_path,
        )

    root = deps.resolver.root_for(ctx.user_id)
    output = await _git(deps, root, args, cwd=folder)
    data = {"command": shlex.join(["git", *args]), **_output_data(output)}
    if not output.ok:
        return ToolResult.fail(ToolErrorKind.PROCESS, f"git exited with code {output.exit_code}", **data)
    return ToolResult.ok(**data)
