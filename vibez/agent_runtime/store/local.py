"""Local filesystem session store.

Stores each user's conversation log as a JSON file under the data root::

    {data_root}/sessions/{user_id}.json

Uses ``anyio.to_thread.run_sync`` for non-blocking file I/O.

Writes are atomic: data is written to a temporary file in the same directory,
then renamed to the target path.  This prevents corrupt reads if the process
crashes mid-write.  Read-modify-write cycles for one user are serialised with
a per-user lock; different users never contend.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING

from anyio import to_thread

from vibez.agent_runtime.execution.workspace import validate_user_id
from vibez.agent_runtime.locks import KeyedLock
from vibez.agent_runtime.models.session import ConversationLog, Message

if TYPE_CHECKING:
    from collections.abc import Sequence


class LocalSessionStore:
    """Local filesystem implementation of the SessionStore protocol."""

    def __init__(self, data_root: str | Path) -> None:
        self._base = Path(data_root) / "sessions"
        self._locks = KeyedLock()

    def _path(self, user_id: str) -> Path:
        validate_user_id(user_id)
        return self._base / f"{user_id}.json"

    async def _load(self, user_id: str) -> ConversationLog:
        path = self._path(user_id)
        try:
            raw = await to_thread.run_sync(partial(_read_file, path))
        except FileNotFoundError:
            return ConversationLog(user_id=user_id)
        return ConversationLog.model_validate_json(raw)

    # -- Read ------------------------------------------------------------------

    async def get(self, user_id: str) -> list[Message]:
        return (await self._load(user_id)).messages

    async def length(self, user_id: str) -> int:
        return len((await self._load(user_id)).messages)

    async def count(self) -> int:
        return await to_thread.run_sync(partial(_count_sessions, self._base))

    # -- Write -----------------------------------------------------------------

    async def append(self, user_id: str, messages: Sequence[Message]) -> int:
        async with self._locks.hold(user_id):
            log = await self._load(user_id)
            log.messages.extend(messages)
            data = log.model_dump_json(indent=2)
            await to_thread.run_sync(partial(_atomic_write, self._path(user_id), data))
            return len(log.messages)

    async def clear(self, user_id: str) -> None:
        async with self._locks.hold(user_id):
            await to_thread.run_sync(partial(_unlink, self._path(user_id)))


# -- Sync helpers (run in thread pool) -----------------------------------------


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    Ensures readers never see a partially-written file.  The temp file is
    created in the same directory so ``os.replace`` is atomic on POSIX.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _read_file(path: Path) -> str:
    """Read file contents.  Raises ``FileNotFoundError`` if missing."""
    return path.read_text(encoding="utf-8")


def _unlink(path: Path) -> None:
    """Remove a file.  No-op if it doesn't exist."""
    path.unlink(missing_ok=True)


def _count_sessions(base: Path) -> int:
    if not base.is_dir():
        return 0
    return sum(1 for _ in base.glob("*.json"))
