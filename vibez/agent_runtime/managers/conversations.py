"""Conversation read / reset operations.

Conversations are created implicitly by the first completed turn
(``AgentLoop.run_turn``), so this module only provides read and reset.
Resets take the user's turn lock so they never land in the middle of a turn.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from vibez.agent_runtime.models.session import Message
    from vibez.agent_runtime.registry import TurnRegistry
    from vibez.agent_runtime.store.base import SessionStore


class ConversationManager:
    def __init__(self, store: SessionStore, turns: TurnRegistry) -> None:
        self.store = store
        self.turns = turns

    async def history(self, user_id: str) -> list[Message]:
        """Snapshot of the user's conversation (empty if none)."""
        return await self.store.get(user_id)

    async def clear(self, user_id: str) -> None:
        """Discard the user's conversation once any in-flight turn has finished."""
        async with self.turns.exclusive(user_id):
            await self.store.clear(user_id)
        logger.info("Cleared conversation history for user {}", user_id)

    async def active_conversations(self) -> int:
        """Number of users with a non-empty conversation."""
        return await self.store.count()
