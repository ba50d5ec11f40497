"""In-memory session store (process lifetime only)."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vibez.agent_runtime.models.session import Message


class MemorySessionStore:
    """Dict-backed implementation of the SessionStore protocol.

    All mutations complete without awaiting, so on a single event loop each
    call is atomic with respect to other coroutines.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, list[Message]] = {}

    async def get(self, user_id: str) -> list[Message]:
        return [m.model_copy() for m in self._sessions.get(user_id, [])]

    async def append(self, user_id: str, messages: Sequence[Message]) -> int:
        log = self._sessions.setdefault(user_id, [])
        log.extend(m.model_copy() for m in messages)
        return len(log)

    async def clear(self, user_id: str) -> None:
        self._sessions.pop(user_id, None)

    async def length(self, user_id: str) -> int:
        return len(self._sessions.get(user_id, []))

    async def count(self) -> int:
        return sum(1 for log in self._sessions.values() if log)
