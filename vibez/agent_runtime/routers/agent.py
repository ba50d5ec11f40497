"""Agent endpoints (RPC-style): chat, history and status.

Every path parameter ``user_id`` is validated as a single safe path segment
before anything touches a workspace or a session; a rejected id is a 400.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status
from loguru import logger

from vibez.agent_runtime.deps import Conversations, Loop, Settings, Turns
from vibez.agent_runtime.execution.coordinator import TurnTimeoutError
from vibez.agent_runtime.execution.runtime import api_key_configured
from vibez.agent_runtime.execution.workspace import SecurityError, validate_user_id
from vibez.agent_runtime.log import log_security_event
from vibez.agent_runtime.models.api import (
    ChatRequest,
    ChatResponse,
    ClearHistoryResponse,
    HistoryResponse,
    StatusResponse,
)
from vibez.agent_runtime.registry import ShuttingDownError

if TYPE_CHECKING:
    from collections.abc import Coroutine
    from typing import Any

    from vibez.agent_runtime.execution.coordinator import TurnResult

router = APIRouter(prefix="/agent", tags=["agent"])

DISCONNECT_POLL_INTERVAL = 0.5
"""Seconds between checks for a chat client that went away."""

CLIENT_CLOSED_REQUEST = 499


def _checked_user_id(user_id: str, action: str) -> str:
    try:
        return validate_user_id(user_id)
    except SecurityError as exc:
        log_security_event(user_id, action, str(exc))
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from None


async def _run_while_connected(request: Request, turn: Coroutine[Any, Any, TurnResult]) -> TurnResult | None:
    """Await *turn*, cancelling it if the client disconnects first.

    Returns ``None`` when the turn was cancelled this way.
    """
    task = asyncio.ensure_future(turn)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                await asyncio.wait({task})
                if task.cancelled():
                    return None
                return task.result()
    finally:
        if not task.done():
            task.cancel()


@router.get("/status", response_model=StatusResponse)
async def agent_status(
    request: Request,
    conversations: Conversations,
    turns: Turns,
    settings: Settings,
) -> StatusResponse:
    """Report whether the agent is available and how busy it is."""
    return StatusResponse(
        agent_available=request.app.state.agent_loop is not None,
        active_conversations=await conversations.active_conversations(),
        active_turns=turns.active_count,
        api_key_configured=api_key_configured(settings.model),
        model=settings.model,
    )


@router.post("/{user_id}/chat", response_model=ChatResponse)
async def chat(user_id: str, body: ChatRequest, loop: Loop, request: Request) -> ChatResponse:
    """Run one chat turn for *user_id*.

    Turns of the same user are queued and applied in arrival order.  If the
    client disconnects, the turn is cancelled and nothing is recorded.
    """
    user_id = _checked_user_id(user_id, "chat")
    try:
        result = await _run_while_connected(
            request,
            loop.run_turn(user_id, body.message, clear_history=body.clear_history),
        )
    except ShuttingDownError:
        raise HTTPException(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Agent runtime is shutting down.",
        ) from None
    except TurnTimeoutError as exc:
        raise HTTPException(status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc)) from None
    except Exception as exc:
        logger.exception("Chat turn failed for user {}", user_id)
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Agent failed to process the message: {exc}",
        ) from None

    if result is None:
        logger.info("Chat client for user {} disconnected; turn cancelled", user_id)
        raise HTTPException(CLIENT_CLOSED_REQUEST, detail="Client disconnected before the turn finished.")

    return ChatResponse(
        reply=result.reply,
        tool_call_count=result.tool_call_count,
        conversation_length=result.conversation_length,
        usage=result.summary.usage,
        duration_ms=result.summary.duration_ms,
    )


@router.get("/{user_id}/history", response_model=HistoryResponse)
async def get_history(user_id: str, conversations: Conversations) -> HistoryResponse:
    """Return the user's conversation in order."""
    user_id = _checked_user_id(user_id, "history")
    messages = await conversations.history(user_id)
    return HistoryResponse(user_id=user_id, messages=messages, count=len(messages))


@router.delete("/{user_id}/history", response_model=ClearHistoryResponse)
async def clear_history(user_id: str, conversations: Conversations) -> ClearHistoryResponse:
    """Discard the user's conversation (waits for an in-flight turn)."""
    user_id = _checked_user_id(user_id, "clear_history")
    await conversations.clear(user_id)
    return ClearHistoryResponse(message="Conversation history cleared")
