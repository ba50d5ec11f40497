"""File tools: read, write, list and delete inside the caller's workspace.

Every handler resolves its path through the workspace resolver first; the
actual I/O runs in a worker thread.  Handlers raise ``SecurityError`` /
``OSError`` and leave the translation into a ``ToolResult`` to the registry.
"""

from __future__ import annotations

import errno
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING

from anyio import to_thread

from vibez.agent_runtime.models.enums import EntryType
from vibez.agent_runtime.models.tools import (
    DeleteFileParams,
    ListFilesParams,
    ReadFileParams,
    ToolResult,
    WriteFileParams,
)

if TYPE_CHECKING:
    from vibez.agent_runtime.context import ToolContext
    from vibez.agent_runtime.tools.base import ToolDeps


async def read_file(deps: ToolDeps, ctx: ToolContext, params: ReadFileParams) -> ToolResult:
    path = deps.resolver.resolve(ctx.user_id, params.relative_path)
    content = await to_thread.run_sync(partial(_read_text, path, deps.settings.max_read_bytes))
    return ToolResult.ok(content=content, path=params.relative_path)


async def write_file(deps: ToolDeps, ctx: ToolContext, params: WriteFileParams) -> ToolResult:
    path = deps.resolver.resolve(ctx.user_id, params.relative_path)
    written = await to_thread.run_sync(partial(_write_text, path, params.content))
    return ToolResult.ok(path=params.relative_path, bytesWritten=written)


async def list_files(deps: ToolDeps, ctx: ToolContext, params: ListFilesParams) -> ToolResult:
    path = deps.resolver.resolve(ctx.user_id, params.relative_path)
    root = deps.resolver.root_for(ctx.user_id)
    entries = await to_thread.run_sync(partial(_list_dir, path, root))
    return ToolResult.ok(files=entries, directory=params.relative_path)


async def delete_file(deps: ToolDeps, ctx: ToolContext, params: DeleteFileParams) -> ToolResult:
    path = deps.resolver.resolve(ctx.user_id, params.relative_path)
    await to_thread.run_sync(partial(_unlink, path))
    return ToolResult.ok(deletedPath=params.relative_path)


# -- Sync helpers (run in thread pool) -----------------------------------------


def _read_text(path: Path, limit: int) -> str:
    size = path.stat().st_size
    if size > limit:
        raise OSError(errno.EFBIG, f"File is too large to read ({size} bytes, limit {limit})", str(path))
    # newline="" keeps \r\n intact so content round-trips exactly.
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, content: str) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = content.encode("utf-8")
    path.write_bytes(data)
    return len(data)


def _list_dir(path: Path, root: Path) -> list[dict[str, str]]:
    if not path.is_dir():
        raise NotADirectoryError(errno.ENOTDIR, "Not a directory", str(path))
    entries = []
    for entry in sorted(path.iterdir(), key=lambda p: p.name):
        kind = EntryType.DIRECTORY if entry.is_dir() and not entry.is_symlink() else EntryType.FILE
        entries.append(
            {
                "name": entry.name,
                "type": kind.value,
                "path": entry.relative_to(root).as_posix(),
            }
        )
    return entries


def _unlink(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        raise IsADirectoryError(errno.EISDIR, "Is a directory; only files can be deleted", str(path))
    path.unlink()
