"""Per-key asyncio locks.

``KeyedLock`` hands out one ``asyncio.Lock`` per key, created on demand and
dropped again as soon as nobody holds or waits for it, so the map does not
grow with every user ever seen.  Locks for different keys are independent:
holding ``"alice"`` never delays ``"bob"``.

``asyncio.Lock`` wakes waiters in FIFO order, which gives callers for the
same key first-come, first-served ordering.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class KeyedLock:
    """A family of mutexes indexed by key."""

    def __init__(self) -> None:
        self._entries: dict[Hashable, _Entry] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """Acquire the lock for *key* for the duration of the ``async with`` block."""
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(key, None)

    def locked(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def waiting(self, key: Hashable) -> int:
        """Number of holders plus waiters for *key*."""
        entry = self._entries.get(key)
        return entry.users if entry is not None else 0

    def __len__(self) -> int:
        return len(self._entries)
