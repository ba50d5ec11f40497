"""Execution coordinator -- runs one chat turn from history to reply.

The coordinator manages the full lifecycle of a single turn:

1. **Setup**: Register the turn and wait for the user's lock
2. **Execute**: Run the agent over the stored history under the turn timeout
3. **Finalize**: Append the user message and the reply as one unit

The loop itself is stateless; every piece of conversation state lives in the
``SessionStore``.  A failed turn leaves the session exactly as it was.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic_ai.messages import ModelRequest, ModelResponse, TextPart, ToolCallPart, UserPromptPart

from vibez.agent_runtime.context import ToolContext
from vibez.agent_runtime.models.enums import MessageRole
from vibez.agent_runtime.models.session import Message, RunSummary, UsageSummary

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pydantic_ai import Agent
    from pydantic_ai.agent import AgentRunResult
    from pydantic_ai.messages import ModelMessage

    from vibez.agent_runtime.registry import TurnRegistry
    from vibez.agent_runtime.settings import VibezSettings
    from vibez.agent_runtime.store.base import SessionStore

logger = logging.getLogger(__name__)


class TurnTimeoutError(TimeoutError):
    """The model did not finish the turn within ``turn_timeout``."""

    def __init__(self, user_id: str, timeout: float) -> None:
        super().__init__(f"Turn for user {user_id} timed out after {timeout:g}s")
        self.user_id = user_id
        self.timeout = timeout


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass
class TurnResult:
    """Outcome of a completed turn."""

    reply: str
    tool_call_count: int
    conversation_length: int
    summary: RunSummary = field(default_factory=RunSummary)


# ---------------------------------------------------------------------------
# History mapping
# ---------------------------------------------------------------------------


def to_model_messages(history: Sequence[Message]) -> list[ModelMessage]:
    """Map stored messages to pydantic-ai message history."""
    messages: list[ModelMessage] = []
    for message in history:
        if message.role == MessageRole.USER:
            messages.append(ModelRequest(parts=[UserPromptPart(content=message.content)]))
        else:
            messages.append(ModelResponse(parts=[TextPart(content=message.content)]))
    return messages


def _count_tool_calls(messages: Sequence[ModelMessage]) -> int:
    return sum(
        1
        for message in messages
        if isinstance(message, ModelResponse)
        for part in message.parts
        if isinstance(part, ToolCallPart)
    )


def _build_run_summary(result: AgentRunResult[str], duration_ms: int) -> RunSummary:
    """Build run summary from pydantic-ai usage data."""
    usage = result.usage()
    return RunSummary(
        duration_ms=duration_ms,
        usage=UsageSummary(
            total_tokens=usage.total_tokens,
            prompt_tokens=usage.input_tokens,
            completion_tokens=usage.output_tokens,
            model_requests=usage.requests,
        ),
    )


# ---------------------------------------------------------------------------
# Agent loop
# ---------------------------------------------------------------------------


class AgentLoop:
    """Runs turns of the coding agent against per-user sessions.

    Parameters
    ----------
    agent:
        The pydantic-ai agent (from ``create_coding_agent``).
    store:
        Session store holding every user's conversation.
    turns:
        Turn registry providing per-user serialisation and shutdown drain.
    settings:
        Service settings (``turn_timeout``).
    """

    def __init__(
        self,
        agent: Agent[ToolContext, str],
        store: SessionStore,
        turns: TurnRegistry,
        settings: VibezSettings,
    ) -> None:
        self.agent = agent
        self.store = store
        self.turns = turns
        self.settings = settings

    async def run_turn(self, user_id: str, message: str, *, clear_history: bool = False) -> TurnResult:
        """Run one turn for *user_id* and persist it on success.

        Raises
        ------
        ShuttingDownError
            If the registry no longer accepts turns.
        TurnTimeoutError
            If the model exceeds ``turn_timeout``.  Nothing is appended.
        """
        async with self.turns.turn(user_id) as active:
            start_time = time.monotonic()
            logger.info("Turn %s started for user %s", active.turn_id, user_id)

            if clear_history:
                await self.store.clear(user_id)
                logger.info("Cleared conversation history for user %s", user_id)

            history = to_model_messages(await self.store.get(user_id))
            deps = ToolContext(user_id=user_id, turn_id=active.turn_id)

            try:
                async with asyncio.timeout(self.settings.turn_timeout):
                    result = await self.agent.run(message, message_history=history, deps=deps)
            except TimeoutError as exc:
                logger.warning("Turn %s for user %s timed out", active.turn_id, user_id)
                raise TurnTimeoutError(user_id, self.settings.turn_timeout) from exc

            reply = result.output
            length = await self.store.append(
                user_id,
                [
                    Message(role=MessageRole.USER, content=message),
                    Message(role=MessageRole.ASSISTANT, content=reply),
                ],
            )

            duration_ms = int((time.monotonic() - start_time) * 1000)
            tool_calls = _count_tool_calls(result.new_messages())
            summary = _build_run_summary(result, duration_ms)
            logger.info(
                "Turn %s completed for user %s: tool_calls=%d, length=%d, duration=%dms",
                active.turn_id,
                user_id,
                tool_calls,
                length,
                duration_ms,
            )
            return TurnResult(
                reply=reply,
                tool_call_count=tool_calls,
                conversation_length=length,
                summary=summary,
            )
