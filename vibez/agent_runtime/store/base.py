"""Session store interface for conversation logs.

A session is the ordered message log of one user's conversation with the
agent.  The store only ever appends to it or discards it as a whole; it is
never edited in place.  The interface is async so an in-memory store and a
file-backed one are interchangeable behind the agent loop.

Callers serialise writes per user through the ``TurnRegistry``; stores
themselves only guarantee that one ``append`` call lands as a unit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vibez.agent_runtime.models.session import Message


@runtime_checkable
class SessionStore(Protocol):
    """Async protocol for per-user conversation logs."""

    async def get(self, user_id: str) -> list[Message]:
        """Return a snapshot of the user's messages (empty if no session)."""
        ...

    async def append(self, user_id: str, messages: Sequence[Message]) -> int:
        """Append *messages* in order as one unit.  Returns the new length."""
        ...

    async def clear(self, user_id: str) -> None:
        """Discard the user's session.  No-op if there is none."""
        ...

    async def length(self, user_id: str) -> int:
        """Number of messages in the user's session."""
        ...

    async def count(self) -> int:
        """Number of users with a non-empty session."""
        ...
